"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path

from depindex.common.fs import read_json, write_json
from depindex.pipeline.validate import coverage_report_path


def write_run_summary(data_dir: Path, run_id: str, run_date: str, stages: list[str]) -> Path:
    report_path = coverage_report_path(data_dir)
    totals = {
        "localities": 0,
        "pairs": 0,
        "summaries": 0,
        "undefined_localities": 0,
        "issues": 0,
    }
    warnings: list[str] = []
    errors: list[str] = []

    if report_path.exists():
        report = read_json(report_path)
        counts = report.get("counts", {})
        totals["localities"] = int(counts.get("localities_in", 0))
        totals["pairs"] = int(counts.get("pairs", 0))
        totals["summaries"] = int(counts.get("summaries", 0))
        totals["undefined_localities"] = int(counts.get("undefined_localities", 0))
        totals["issues"] = int(counts.get("issues", 0))
        warnings = list(report.get("warnings", []))
        errors = list(report.get("errors", []))
    else:
        errors.append("MISSING_COVERAGE_REPORT")

    status = "success"
    if errors:
        status = "error"
    elif warnings:
        status = "partial"

    summary_path = report_path.parent / "run_summary.json"
    payload = {
        "run_id": run_id,
        "run_date": run_date,
        "status": status,
        "stages": stages,
        "totals": totals,
        "warning_count": len(warnings),
        "error_count": len(errors),
        "warnings": warnings,
        "errors": errors,
    }
    write_json(summary_path, payload)
    return summary_path
