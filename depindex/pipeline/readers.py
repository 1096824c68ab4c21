"""Boundary and CSV readers producing the overlay data model.

Boundary files go through geopandas with the pyogrio engine, so any vector
format GDAL opens (GeoJSON, ESRI Shapefile, GeoPackage) can be an input.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import geopandas as gpd
import numpy as np
import pandas as pd
from pyogrio.errors import DataLayerError, DataSourceError
from pyproj import CRS
from pyproj.exceptions import CRSError

from depindex.common.constants import AREA_UNIT_TO_M2
from depindex.common.errors import ConfigError, ContractError, StageError
from depindex.common.fs import read_csv
from depindex.common.models import Locality, Subdivision
from depindex.overlay.join import parse_number


def target_crs(epsg: int | str) -> CRS:
    try:
        crs = CRS.from_user_input(epsg)
    except CRSError as exc:
        raise ConfigError(f"Unknown CRS: {epsg}") from exc
    if not crs.is_projected:
        raise ConfigError(f"CRS {epsg} is not projected; areas would not be planar")
    return crs


def area_scale(epsg: int | str, area_unit: str) -> float:
    """Factor turning a declared area in `area_unit` into square CRS units."""
    unit_to_m = target_crs(epsg).axis_info[0].unit_conversion_factor
    return AREA_UNIT_TO_M2[area_unit] / (unit_to_m * unit_to_m)


def _within_lonlat(bounds) -> bool:
    minx, miny, maxx, maxy = bounds
    return -180 <= minx and maxx <= 180 and -90 <= miny and maxy <= 90


def _same_crs(found: CRS, expected: CRS) -> bool:
    if found.equals(expected, ignore_axis_order=True):
        return True
    # Shapefile .prj files carry ESRI names; fall back to the EPSG identity.
    code = expected.to_epsg()
    return code is not None and found.to_epsg() == code


def _align_crs(frame: gpd.GeoDataFrame, epsg: int | str, path: Path) -> gpd.GeoDataFrame:
    crs = target_crs(epsg)
    if frame.crs is None:
        return frame.set_crs(crs)
    if _same_crs(frame.crs, crs):
        return frame
    # GeoJSON without a crs member reads as CRS84 whatever its coordinates are.
    if frame.crs.is_geographic and not _within_lonlat(frame.total_bounds):
        return frame.set_crs(crs, allow_override=True)
    raise ContractError(f"{path} is in {frame.crs.to_string()}, expected {crs.to_string()}; reproject it first")


def read_boundaries(path: Path, epsg: int | str) -> gpd.GeoDataFrame:
    if not path.exists():
        raise StageError(f"Missing boundary input: {path}")
    try:
        frame = gpd.read_file(path, engine="pyogrio")
    except (DataSourceError, DataLayerError) as exc:
        raise ContractError(f"Unreadable boundary file {path}: {exc}") from exc
    return _align_crs(frame, epsg, path)


def _python_value(value: Any) -> Any:
    if isinstance(value, np.generic):
        value = value.item()
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return None
    return value


def _records(frame: gpd.GeoDataFrame) -> list[tuple[dict, Any]]:
    attributes = pd.DataFrame(frame.drop(columns=frame.geometry.name))
    rows = [
        {column: _python_value(value) for column, value in record.items()}
        for record in attributes.to_dict("records")
    ]
    return list(zip(rows, frame.geometry))


def _require_column(frame: gpd.GeoDataFrame, field: str, path: Path) -> None:
    if field not in frame.columns:
        raise ContractError(f"{path} has no {field!r} column")


def _record_key(properties: dict, field: str, position: int, path: Path) -> Any:
    key = properties.get(field)
    if key is None:
        raise ContractError(f"Feature {position} in {path} has no {field!r} value")
    return key


def _is_unnamed(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def read_localities(path: Path, cfg: dict, epsg: int | str) -> list[Locality]:
    frame = read_boundaries(path, epsg)
    _require_column(frame, cfg["id_field"], path)
    drop_unnamed = cfg.get("drop_unnamed", True)
    localities: list[Locality] = []
    for position, (properties, geometry) in enumerate(_records(frame)):
        name = properties.get(cfg["name_field"])
        if drop_unnamed and _is_unnamed(name):
            continue
        localities.append(
            Locality(
                id=_record_key(properties, cfg["id_field"], position, path),
                name=None if _is_unnamed(name) else str(name),
                geometry=geometry,
                properties=properties,
            )
        )
    return localities


def read_subdivisions(path: Path, cfg: dict, scale: float, epsg: int | str) -> list[Subdivision]:
    frame = read_boundaries(path, epsg)
    _require_column(frame, cfg["key_field"], path)
    subdivisions: list[Subdivision] = []
    for position, (properties, geometry) in enumerate(_records(frame)):
        nominal = parse_number(properties.get(cfg["area_field"]))
        subdivisions.append(
            Subdivision(
                key=_record_key(properties, cfg["key_field"], position, path),
                geometry=geometry,
                area=None if nominal is None else nominal * scale,
            )
        )
    return subdivisions


def read_attribute_rows(path: Path) -> list[dict]:
    if not path.exists():
        raise StageError(f"Missing attribute table: {path}")
    _header, rows = read_csv(path)
    return rows
