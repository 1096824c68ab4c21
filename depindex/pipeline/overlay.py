"""Overlay stage: read inputs, run the overlay engine, persist summaries and issues."""

from __future__ import annotations

import logging
from pathlib import Path

from depindex.common.config_loader import ConfigBundle
from depindex.common.fs import write_json
from depindex.common.logging import log_event
from depindex.overlay.engine import run_overlay
from depindex.overlay.join import build_attribute_index
from depindex.pipeline.readers import area_scale, read_attribute_rows, read_localities, read_subdivisions

INTERMEDIATE_FILENAME = "overlay.json"


def intermediate_path(data_dir: Path) -> Path:
    return data_dir / "intermediate" / INTERMEDIATE_FILENAME


def run_overlay_stage(
    bundle: ConfigBundle,
    data_dir: Path,
    run_id: str,
    logger: logging.Logger | None = None,
) -> dict:
    cfg = bundle.pipeline
    inputs = cfg["inputs"]
    logger = logger or logging.getLogger(__name__)

    epsg = cfg["crs"]["epsg"]
    scale = area_scale(epsg, inputs["subdivisions"]["area_unit"])
    localities = read_localities(data_dir / inputs["localities"]["path"], inputs["localities"], epsg)
    subdivisions = read_subdivisions(data_dir / inputs["subdivisions"]["path"], inputs["subdivisions"], scale, epsg)
    rows = read_attribute_rows(data_dir / inputs["attributes"]["path"])
    log_event(
        logger,
        "inputs read",
        run_id=run_id,
        stage="overlay",
        event="INPUTS_READ",
        status="ok",
        rows_in=len(localities) + len(subdivisions) + len(rows),
    )

    attributes, attribute_issues = build_attribute_index(rows, inputs["attributes"])
    result = run_overlay(localities, subdivisions, attributes, bundle.overlay, logger=logger)
    issues = [*attribute_issues, *result.issues]

    payload = {
        "run_id": run_id,
        "crs_epsg": epsg,
        "area_scale": scale,
        "counts": {**result.counts, "attribute_rows": len(rows), "issues": len(issues)},
        "summaries": [item.summary.to_dict() for item in result.results],
        "pairs": [pair.to_dict() for pair in result.pairs],
        "issues": [issue.to_dict() for issue in issues],
    }
    write_json(intermediate_path(data_dir), payload)
    return payload
