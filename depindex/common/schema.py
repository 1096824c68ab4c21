"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from depindex.common.constants import AREA_UNIT_TO_M2, INPUT_NAMES, VECTOR_DRIVERS
from depindex.common.errors import ConfigError


def _assert_mapping(obj, ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    _assert_mapping(obj, ctx)
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


INPUT_REQUIRED_KEYS = {
    "localities": {"path", "id_field", "name_field"},
    "subdivisions": {"path", "key_field", "area_field", "area_unit"},
    "attributes": {"path", "key_field", "score_field", "decile_field", "population_field"},
}
INPUT_OPTIONAL_KEYS = {
    "localities": {"url", "drop_unnamed"},
    "subdivisions": {"url"},
    "attributes": {"url"},
}


def _validate_overlay_section(overlay: dict) -> None:
    workers = overlay.get("workers", 1)
    if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
        raise ConfigError("overlay.workers must be a positive integer")

    deciles = overlay.get("high_deprivation_deciles", [9, 10])
    if not isinstance(deciles, list) or not deciles:
        raise ConfigError("overlay.high_deprivation_deciles must be a non-empty list")
    for decile in deciles:
        if not isinstance(decile, int) or not 1 <= decile <= 10:
            raise ConfigError(f"overlay.high_deprivation_deciles has out-of-range value: {decile}")

    tolerance = overlay.get("area_tolerance", 1e-6)
    if not isinstance(tolerance, (int, float)) or tolerance < 0:
        raise ConfigError("overlay.area_tolerance must be a non-negative number")


def validate_pipeline_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top_required = {"crs", "inputs", "overlay", "output"}
    _assert_required_keys(cfg, top_required, "pipeline config")
    _assert_no_unknown_keys(cfg, top_required, "pipeline config", allow_unknown)

    _assert_required_keys(cfg["crs"], {"epsg"}, "crs")

    _assert_required_keys(cfg["inputs"], set(INPUT_NAMES), "inputs")
    for name in INPUT_NAMES:
        section = cfg["inputs"][name]
        ctx = f"inputs.{name}"
        _assert_required_keys(section, INPUT_REQUIRED_KEYS[name], ctx)
        _assert_no_unknown_keys(section, INPUT_REQUIRED_KEYS[name] | INPUT_OPTIONAL_KEYS[name], ctx, allow_unknown)

    area_unit = cfg["inputs"]["subdivisions"]["area_unit"]
    if area_unit not in AREA_UNIT_TO_M2:
        known = ", ".join(sorted(AREA_UNIT_TO_M2))
        raise ConfigError(f"inputs.subdivisions.area_unit must be one of {known}, got {area_unit!r}")

    _assert_mapping(cfg["overlay"], "overlay")
    _assert_no_unknown_keys(
        cfg["overlay"],
        {"workers", "drop_zero_area_pairs", "high_deprivation_deciles", "area_tolerance"},
        "overlay",
        allow_unknown,
    )
    _validate_overlay_section(cfg["overlay"])

    _assert_required_keys(cfg["output"], {"vector_filename", "csv_filename", "csv_columns"}, "output")
    vector_filename = str(cfg["output"]["vector_filename"])
    if not vector_filename.lower().endswith(tuple(VECTOR_DRIVERS)):
        known = ", ".join(sorted(VECTOR_DRIVERS))
        raise ConfigError(f"output.vector_filename must end in one of {known}, got {vector_filename!r}")
    columns = cfg["output"]["csv_columns"]
    if not isinstance(columns, list):
        raise ConfigError("output.csv_columns must be a list")
    dupes = {name for name in columns if columns.count(name) > 1}
    if dupes:
        raise ConfigError(f"Duplicate CSV columns: {', '.join(sorted(dupes))}")

    return cfg
