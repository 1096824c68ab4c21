"""Vector and CSV export of localities enriched with their summaries."""

from __future__ import annotations

from pathlib import Path

import geopandas as gpd
import pandas as pd

from depindex.common.constants import SUMMARY_FIELDS, VECTOR_DRIVERS
from depindex.common.errors import ConfigError, StageError
from depindex.common.fs import atomic_path, read_json, write_csv
from depindex.common.models import LocalityResult, LocalitySummary
from depindex.overlay.assemble import assemble_results
from depindex.pipeline.overlay import intermediate_path
from depindex.pipeline.readers import read_localities, target_crs


def csv_headers(output_config: dict) -> list[str]:
    return [*output_config["csv_columns"], *SUMMARY_FIELDS]


def vector_driver(path: Path) -> str:
    try:
        return VECTOR_DRIVERS[path.suffix.lower()]
    except KeyError as exc:
        known = ", ".join(sorted(VECTOR_DRIVERS))
        raise ConfigError(f"Unsupported vector output {path.name}; use one of {known}") from exc


def _serialize_row(row: dict, headers: list[str]) -> dict:
    out = {}
    for key in headers:
        value = row.get(key)
        if value is None:
            out[key] = ""
        elif isinstance(value, bool):
            out[key] = "true" if value else "false"
        else:
            out[key] = value
    return out


def _load_summaries(data_dir: Path) -> dict:
    path = intermediate_path(data_dir)
    if not path.exists():
        raise StageError(f"Missing overlay output: {path}; run the overlay stage first")
    payload = read_json(path)
    return {item["locality_id"]: LocalitySummary(**item) for item in payload.get("summaries", [])}


def locality_frame(results: list[LocalityResult], epsg: int | str) -> gpd.GeoDataFrame:
    """One row per locality: its source properties, then the summary columns."""
    records = [{**result.locality.properties, **result.summary.values()} for result in results]
    frame = gpd.GeoDataFrame(
        pd.DataFrame.from_records(records),
        geometry=[result.locality.geometry for result in results],
        crs=target_crs(epsg),
    )
    for field in SUMMARY_FIELDS:
        # Undefined summaries become NaN, written as null.
        frame[field] = pd.to_numeric(frame[field]).astype("float64")
    return frame


def write_locality_vector(path: Path, results: list[LocalityResult], epsg: int | str) -> Path:
    driver = vector_driver(path)
    frame = locality_frame(results, epsg)
    with atomic_path(path) as partial_path:
        frame.to_file(partial_path, driver=driver, engine="pyogrio")
    return path


def write_locality_csv(path: Path, results: list[LocalityResult], output_config: dict) -> Path:
    headers = csv_headers(output_config)
    rows = [
        _serialize_row({**result.locality.properties, **result.summary.values()}, headers)
        for result in results
    ]
    write_csv(path, headers, rows)
    return path


def run_export(pipeline_config: dict, data_dir: Path) -> dict:
    inputs = pipeline_config["inputs"]
    output = pipeline_config["output"]
    epsg = pipeline_config["crs"]["epsg"]

    localities = read_localities(data_dir / inputs["localities"]["path"], inputs["localities"], epsg)
    results = assemble_results(localities, _load_summaries(data_dir))

    vector_path = write_locality_vector(data_dir / "out" / output["vector_filename"], results, epsg)
    csv_path = write_locality_csv(data_dir / "out" / output["csv_filename"], results, output)
    return {"vector": str(vector_path), "csv": str(csv_path), "rows": len(results)}
