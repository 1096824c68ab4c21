"""Exact overlap areas and overlap weights for candidate pairs."""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Hashable, Mapping, Sequence

import shapely
from shapely.geometry.base import BaseGeometry

from depindex.common.config_loader import OverlayOptions
from depindex.common.constants import ISSUE_UNDEFINED_WEIGHT, ISSUE_ZERO_AREA_OVERLAP
from depindex.common.errors import UndefinedWeightError
from depindex.common.logging import log_event
from depindex.common.models import Locality, OverlapPair, OverlayIssue, Subdivision
from depindex.overlay.store import GeometryStore, area, intersection

_LOG = logging.getLogger(__name__)


def intersection_area(geometry: BaseGeometry) -> float:
    """Total area over every part of a (possibly multipart) intersection."""
    if geometry.is_empty:
        return 0.0
    return math.fsum(area(part) for part in shapely.get_parts(geometry))


def overlap_weight(overlap_area: float, subdivision: Subdivision) -> float:
    nominal = subdivision.area
    if nominal is None or math.isnan(nominal) or nominal <= 0:
        raise UndefinedWeightError(
            f"subdivision area is {nominal!r}",
            entity="subdivision",
            key=subdivision.key,
        )
    return overlap_area / nominal


def quantify_pair(locality: Locality, subdivision: Subdivision) -> OverlapPair:
    overlap_area = intersection_area(intersection(locality.geometry, subdivision.geometry))
    return OverlapPair(
        locality_id=locality.id,
        subdivision_key=subdivision.key,
        subdivision_ordinal=subdivision.ordinal,
        intersection_area=overlap_area,
        overlap_weight=overlap_weight(overlap_area, subdivision),
    )


def quantify_locality(
    store: GeometryStore,
    locality_id: Hashable,
    ordinals: Sequence[int],
    options: OverlayOptions,
) -> tuple[list[OverlapPair], list[OverlayIssue]]:
    locality = store.locality(locality_id)
    pairs: list[OverlapPair] = []
    issues: list[OverlayIssue] = []
    for ordinal in ordinals:
        subdivision = store.subdivision_at(ordinal)
        try:
            pair = quantify_pair(locality, subdivision)
        except UndefinedWeightError as exc:
            issues.append(
                OverlayIssue(
                    code=ISSUE_UNDEFINED_WEIGHT,
                    entity="pair",
                    key=(locality_id, subdivision.key),
                    detail=str(exc),
                )
            )
            continue
        if options.drop_zero_area_pairs and pair.intersection_area <= 0:
            issues.append(
                OverlayIssue(
                    code=ISSUE_ZERO_AREA_OVERLAP,
                    entity="pair",
                    key=(locality_id, subdivision.key),
                    detail="geometries touch without overlapping",
                )
            )
            continue
        pairs.append(pair)
    return pairs, issues


def quantify_pairs(
    store: GeometryStore,
    candidates: Mapping[Hashable, Sequence[int]],
    options: OverlayOptions,
    *,
    logger: logging.Logger | None = None,
) -> tuple[list[OverlapPair], list[OverlayIssue]]:
    """Quantify every candidate pair, fanning out per locality when `options.workers > 1`."""
    logger = logger or _LOG
    work = [(locality_id, ordinals) for locality_id, ordinals in candidates.items() if ordinals]

    if options.workers > 1 and len(work) > 1:
        with ThreadPoolExecutor(max_workers=options.workers) as executor:
            chunks = list(
                executor.map(lambda item: quantify_locality(store, item[0], item[1], options), work)
            )
    else:
        chunks = [quantify_locality(store, locality_id, ordinals, options) for locality_id, ordinals in work]

    pairs: list[OverlapPair] = []
    issues: list[OverlayIssue] = []
    for chunk_pairs, chunk_issues in chunks:
        pairs.extend(chunk_pairs)
        issues.extend(chunk_issues)

    undefined = sum(1 for issue in issues if issue.code == ISSUE_UNDEFINED_WEIGHT)
    if undefined:
        log_event(
            logger,
            f"excluded {undefined} pairs with undefined overlap weight",
            level=logging.WARNING,
            event="PAIRS_EXCLUDED",
            status="warning",
            entity="pair",
            error_code=UndefinedWeightError.error_code,
        )
    log_event(
        logger,
        "overlap quantified",
        event="PAIRS_QUANTIFIED",
        status="ok",
        rows_in=sum(len(ordinals) for _, ordinals in work),
        rows_out=len(pairs),
    )
    return pairs, issues
