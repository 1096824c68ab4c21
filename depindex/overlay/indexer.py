"""Candidate pair discovery between localities and subdivisions."""

from __future__ import annotations

from typing import Hashable

from depindex.common.models import Locality
from depindex.overlay.store import GeometryStore


def find_candidates(store: GeometryStore, locality: Locality) -> set[Hashable]:
    return {store.subdivision_at(ordinal).key for ordinal in store.query(locality.geometry)}


def candidate_ordinals(store: GeometryStore) -> dict[Hashable, list[int]]:
    """Intersecting subdivision ordinals per locality id, including empty lists."""
    return {locality.id: store.query(locality.geometry) for locality in store.localities}


def candidate_pairs(store: GeometryStore) -> list[tuple[Hashable, int]]:
    return [
        (locality_id, ordinal)
        for locality_id, ordinals in candidate_ordinals(store).items()
        for ordinal in ordinals
    ]
