"""Weighted reduction of overlap pairs into one summary per locality.

Pairs with a missing value or weight are left out of both numerator and
denominator. `None` is the undefined marker: it is returned when no pair is
eligible or a weighted denominator is zero, so "no data" never reads as 0.
Sums use `math.fsum`, which makes every result independent of pair order.
"""

from __future__ import annotations

import math
from collections import defaultdict
from typing import AbstractSet, Hashable, Iterable, Sequence

from depindex.common.constants import HIGH_DEPRIVATION_DECILES
from depindex.common.models import LocalitySummary, OverlapPair


def _eligible(values: Iterable[float | None], weights: Iterable[float | None]) -> list[tuple[float, float]]:
    return [
        (float(value), float(weight))
        for value, weight in zip(values, weights)
        if value is not None and weight is not None and not math.isnan(value) and not math.isnan(weight)
    ]


def weighted_mean(values: Sequence[float | None], weights: Sequence[float | None]) -> float | None:
    pairs = _eligible(values, weights)
    if not pairs:
        return None
    denominator = math.fsum(weight for _, weight in pairs)
    if denominator == 0:
        return None
    return math.fsum(value * weight for value, weight in pairs) / denominator


def weighted_sum(values: Sequence[float | None], weights: Sequence[float | None]) -> float | None:
    pairs = _eligible(values, weights)
    if not pairs:
        return None
    return math.fsum(value * weight for value, weight in pairs)


def percentage(part: float | None, whole: float | None) -> float | None:
    if part is None or whole is None or whole == 0:
        return None
    return part / whole * 100


def summarise_locality(
    locality_id: Hashable,
    pairs: Sequence[OverlapPair],
    high_deciles: AbstractSet[int] = frozenset(HIGH_DEPRIVATION_DECILES),
) -> LocalitySummary:
    weights = [pair.overlap_weight for pair in pairs]
    scores = [pair.attributes.deprivation_score for pair in pairs]
    deciles = [pair.attributes.deprivation_decile for pair in pairs]
    populations = [pair.attributes.urban_rural_population for pair in pairs]

    population_weighted = weighted_sum(populations, weights)
    high_populations = [
        population if decile in high_deciles else 0.0
        for population, decile in zip(populations, deciles)
        if population is not None
    ]
    high_weights = [
        weight for population, weight in zip(populations, weights) if population is not None
    ]
    population_high = weighted_sum(high_populations, high_weights) if population_weighted is not None else None

    return LocalitySummary(
        locality_id=locality_id,
        deprivation_score_mean=weighted_mean(scores, weights),
        deprivation_decile_mean=weighted_mean(deciles, weights),
        population_weighted=population_weighted,
        population_weighted_high_deprivation=population_high,
        population_pct_high_deprivation=percentage(population_high, population_weighted),
    )


def group_pairs(pairs: Iterable[OverlapPair]) -> dict[Hashable, list[OverlapPair]]:
    groups: dict[Hashable, list[OverlapPair]] = defaultdict(list)
    for pair in pairs:
        groups[pair.locality_id].append(pair)
    return dict(groups)


def aggregate_pairs(
    pairs: Iterable[OverlapPair],
    high_deciles: AbstractSet[int] = frozenset(HIGH_DEPRIVATION_DECILES),
) -> dict[Hashable, LocalitySummary]:
    """One summary per locality that has at least one nonzero-weight pair."""
    return {
        locality_id: summarise_locality(locality_id, group, high_deciles)
        for locality_id, group in group_pairs(pairs).items()
        if any(pair.overlap_weight > 0 for pair in group)
    }
