"""Validation stage and coverage report generation."""

from __future__ import annotations

import math
from collections import Counter
from pathlib import Path

from depindex.common.constants import (
    ISSUE_INVALID_GEOMETRY,
    ISSUE_NO_OVERLAPS,
    ISSUE_UNDEFINED_AGGREGATE,
    SUMMARY_FIELDS,
)
from depindex.common.errors import ContractError, StageError
from depindex.common.fs import read_csv, read_json, write_json
from depindex.pipeline.export import csv_headers
from depindex.pipeline.overlay import intermediate_path

COVERAGE_REPORT_FILENAME = "coverage_report.json"


def coverage_report_path(data_dir: Path) -> Path:
    return data_dir / "out" / "reports" / COVERAGE_REPORT_FILENAME


def _read_csv_rows(path: Path) -> tuple[list[str], list[dict]]:
    if not path.exists():
        raise StageError(f"Missing CSV input: {path}")
    return read_csv(path)


def _as_float(value: str | None) -> float | None:
    if value in ("", None):
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _column_summary(rows: list[dict], column: str) -> dict:
    values = [number for number in (_as_float(row.get(column)) for row in rows) if number is not None]
    return {
        "min": min(values) if values else None,
        "max": max(values) if values else None,
        "mean": math.fsum(values) / len(values) if values else None,
        "null": len(rows) - len(values),
    }


def _issue_keys(issues: list[dict], code: str, entity: str | None = None) -> list:
    return [
        issue["key"]
        for issue in issues
        if issue["code"] == code and (entity is None or issue["entity"] == entity)
    ]


def run_validate(pipeline_config: dict, data_dir: Path, run_id: str, run_date: str) -> Path:
    output = pipeline_config["output"]
    csv_path = data_dir / "out" / output["csv_filename"]
    overlay_path = intermediate_path(data_dir)

    header, rows = _read_csv_rows(csv_path)
    if not overlay_path.exists():
        raise StageError(f"Missing overlay output: {overlay_path}")
    intermediate = read_json(overlay_path)
    counts = intermediate.get("counts", {})
    issues = intermediate.get("issues", [])

    warnings: list[str] = []
    errors: list[str] = []

    if header != csv_headers(output):
        errors.append("CSV_HEADER_ORDER_MISMATCH")

    pct_values = [_as_float(row.get("population_pct_high_deprivation")) for row in rows]
    if any(pct is not None and not 0 <= pct <= 100 for pct in pct_values):
        errors.append("PCT_HIGH_DEPRIVATION_OUT_OF_RANGE")

    if int(counts.get("area_overshoot_pairs", 0)) > 0:
        errors.append("INTERSECTION_EXCEEDS_SUBDIVISION_AREA")

    if errors:
        raise ContractError(";".join(errors))

    issue_counts = dict(sorted(Counter(issue["code"] for issue in issues).items()))
    dropped_geometries = {
        "locality": _issue_keys(issues, ISSUE_INVALID_GEOMETRY, "locality"),
        "subdivision": _issue_keys(issues, ISSUE_INVALID_GEOMETRY, "subdivision"),
    }
    no_overlap = _issue_keys(issues, ISSUE_NO_OVERLAPS)
    undefined = {
        str(issue["key"]): issue["detail"].split(", ")
        for issue in issues
        if issue["code"] == ISSUE_UNDEFINED_AGGREGATE
    }

    if dropped_geometries["locality"] or dropped_geometries["subdivision"]:
        warnings.append("GEOMETRIES_EXCLUDED")
    if undefined:
        warnings.append("LOCALITIES_WITH_UNDEFINED_SUMMARY")
    if int(counts.get("weight_above_one_pairs", 0)) > 0:
        warnings.append("OVERLAP_WEIGHT_ABOVE_ONE")

    defined_scores = sum(1 for row in rows if _as_float(row.get("deprivation_score_mean")) is not None)
    report_payload = {
        "run_id": run_id,
        "run_date": run_date,
        "counts": {
            **counts,
            "output_rows": len(rows),
        },
        "issues_by_code": issue_counts,
        "quality": {
            "score_coverage_percent": 0.0 if not rows else round((defined_scores / len(rows)) * 100, 2),
        },
        "summary_columns": {column: _column_summary(rows, column) for column in SUMMARY_FIELDS},
        "dropped_geometries": dropped_geometries,
        "no_overlap_localities": no_overlap,
        "undefined_summaries": undefined,
        "warnings": warnings,
        "errors": errors,
    }

    report_path = coverage_report_path(data_dir)
    write_json(report_path, report_payload)
    return report_path
