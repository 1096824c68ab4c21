"""Overlay engine: geometry store through to assembled locality results."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from depindex.common.config_loader import OverlayOptions
from depindex.common.constants import ISSUE_NO_OVERLAPS, ISSUE_UNDEFINED_AGGREGATE
from depindex.common.logging import log_event
from depindex.common.models import (
    Locality,
    LocalityResult,
    OverlapPair,
    OverlayIssue,
    Subdivision,
    SubdivisionAttributes,
)
from depindex.common.time_utils import elapsed_ms
from depindex.overlay.aggregate import aggregate_pairs
from depindex.overlay.assemble import assemble_results, undefined_summary_fields
from depindex.overlay.indexer import candidate_ordinals
from depindex.overlay.join import join_attributes
from depindex.overlay.quantify import quantify_pairs
from depindex.overlay.store import GeometryStore, area

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverlayResult:
    results: list[LocalityResult]
    pairs: list[OverlapPair]
    issues: list[OverlayIssue] = field(default_factory=list)
    counts: dict[str, int] = field(default_factory=dict)


def _area_overshoots(store: GeometryStore, pairs: Sequence[OverlapPair], tolerance: float) -> int:
    overshoots = 0
    for pair in pairs:
        whole = area(store.subdivision_at(pair.subdivision_ordinal).geometry)
        if pair.intersection_area > whole + tolerance * max(whole, 1.0):
            overshoots += 1
    return overshoots


def run_overlay(
    localities: Sequence[Locality],
    subdivisions: Sequence[Subdivision],
    attributes: Mapping[str, SubdivisionAttributes],
    options: OverlayOptions | None = None,
    *,
    logger: logging.Logger | None = None,
) -> OverlayResult:
    options = options or OverlayOptions()
    logger = logger or _LOG
    started = time.perf_counter()

    store = GeometryStore.load(localities, subdivisions, logger=logger)
    issues: list[OverlayIssue] = list(store.issues)

    candidates = candidate_ordinals(store)
    for locality_id, ordinals in candidates.items():
        if not ordinals:
            issues.append(
                OverlayIssue(
                    code=ISSUE_NO_OVERLAPS,
                    entity="locality",
                    key=locality_id,
                    detail="no subdivision intersects the locality",
                )
            )

    pairs, quantify_issues = quantify_pairs(store, candidates, options, logger=logger)
    issues.extend(quantify_issues)

    pairs, join_issues = join_attributes(pairs, attributes)
    issues.extend(join_issues)

    summaries = aggregate_pairs(pairs, options.high_deprivation_deciles)
    results = assemble_results(localities, summaries)

    undefined = 0
    for result in results:
        missing = undefined_summary_fields(result)
        if missing:
            undefined += 1
            issues.append(
                OverlayIssue(
                    code=ISSUE_UNDEFINED_AGGREGATE,
                    entity="locality",
                    key=result.locality.id,
                    detail=", ".join(missing),
                )
            )

    counts = {
        "localities_in": len(localities),
        "localities_kept": len(store.localities),
        "subdivisions_in": len(subdivisions),
        "subdivisions_kept": len(store.subdivisions),
        "candidate_pairs": sum(len(ordinals) for ordinals in candidates.values()),
        "pairs": len(pairs),
        "summaries": len(summaries),
        "undefined_localities": undefined,
        "weight_above_one_pairs": sum(1 for pair in pairs if pair.overlap_weight > 1),
        "area_overshoot_pairs": _area_overshoots(store, pairs, options.area_tolerance),
    }
    log_event(
        logger,
        "overlay complete",
        event="OVERLAY_COMPLETE",
        status="ok" if not issues else "partial",
        duration_ms=elapsed_ms(started),
        rows_in=len(localities),
        rows_out=len(summaries),
    )
    return OverlayResult(results=results, pairs=pairs, issues=issues, counts=counts)
