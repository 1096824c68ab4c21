"""Merge locality summaries back onto the full locality collection."""

from __future__ import annotations

from typing import Hashable, Mapping, Sequence

from depindex.common.models import Locality, LocalityResult, LocalitySummary


def assemble_results(
    localities: Sequence[Locality],
    summaries: Mapping[Hashable, LocalitySummary],
) -> list[LocalityResult]:
    return [
        LocalityResult(
            locality=locality,
            summary=summaries.get(locality.id) or LocalitySummary(locality_id=locality.id),
        )
        for locality in localities
    ]


def undefined_summary_fields(result: LocalityResult) -> list[str]:
    return [name for name, value in result.summary.values().items() if value is None]
