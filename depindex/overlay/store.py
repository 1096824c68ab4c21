"""Geometry store owning the locality and subdivision collections for one run.

Both collections are validated on load: duplicate keys and empty collections
abort the run, while individual malformed geometries are excluded and
reported as issues. Surviving geometries are prepared once and the
subdivisions are indexed in an STRtree whose positions double as the stable
subdivision ordinals used to reference pairs.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from typing import Hashable, Iterable, Sequence

import shapely
from shapely.geometry.base import BaseGeometry
from shapely.strtree import STRtree

from depindex.common.constants import ISSUE_INVALID_GEOMETRY
from depindex.common.errors import DuplicateKeyError, EmptyCollectionError, InvalidGeometryError
from depindex.common.logging import log_event
from depindex.common.models import Locality, OverlayIssue, Subdivision

POLYGONAL_TYPES = {"Polygon", "MultiPolygon"}

_LOG = logging.getLogger(__name__)


def check_geometry(geometry: BaseGeometry | None, *, entity: str, key: Hashable) -> BaseGeometry:
    if geometry is None:
        raise InvalidGeometryError("missing geometry", entity=entity, key=key)
    if geometry.is_empty:
        raise InvalidGeometryError("empty geometry", entity=entity, key=key)
    if geometry.geom_type not in POLYGONAL_TYPES:
        raise InvalidGeometryError(f"unsupported geometry type {geometry.geom_type}", entity=entity, key=key)
    if not shapely.is_valid(geometry):
        raise InvalidGeometryError(shapely.is_valid_reason(geometry), entity=entity, key=key)
    return geometry


def _assert_unique(keys: Iterable[Hashable], entity: str) -> None:
    dupes = sorted(str(key) for key, count in Counter(keys).items() if count > 1)
    if dupes:
        raise DuplicateKeyError(f"Duplicate {entity} keys: {', '.join(dupes)}")


def area(geometry: BaseGeometry) -> float:
    return float(geometry.area)


def intersects(a: BaseGeometry, b: BaseGeometry) -> bool:
    return bool(shapely.intersects(a, b))


def intersection(a: BaseGeometry, b: BaseGeometry) -> BaseGeometry:
    """Intersection of two geometries; empty (never an error) when they do not overlap."""
    return shapely.intersection(a, b)


class GeometryStore:
    def __init__(self, localities: Sequence[Locality], subdivisions: Sequence[Subdivision], issues: list[OverlayIssue]):
        self.localities = list(localities)
        self.subdivisions = list(subdivisions)
        self.issues = issues
        self._locality_by_id = {locality.id: locality for locality in self.localities}
        self._subdivision_by_key = {subdivision.key: subdivision for subdivision in self.subdivisions}
        self._tree = STRtree([subdivision.geometry for subdivision in self.subdivisions])

    @classmethod
    def load(
        cls,
        localities: Sequence[Locality],
        subdivisions: Sequence[Subdivision],
        *,
        logger: logging.Logger | None = None,
    ) -> "GeometryStore":
        logger = logger or _LOG
        if not localities:
            raise EmptyCollectionError("Locality collection is empty")
        if not subdivisions:
            raise EmptyCollectionError("Subdivision collection is empty")
        _assert_unique((locality.id for locality in localities), "locality")
        _assert_unique((subdivision.key for subdivision in subdivisions), "subdivision")

        issues: list[OverlayIssue] = []
        kept_localities = [
            locality
            for locality in localities
            if _accept_geometry(locality.geometry, "locality", locality.id, issues, logger)
        ]
        kept_subdivisions = [
            replace(subdivision, ordinal=ordinal)
            for ordinal, subdivision in enumerate(
                subdivision
                for subdivision in subdivisions
                if _accept_geometry(subdivision.geometry, "subdivision", subdivision.key, issues, logger)
            )
        ]

        if not kept_localities:
            raise EmptyCollectionError("No locality has a usable geometry")
        if not kept_subdivisions:
            raise EmptyCollectionError("No subdivision has a usable geometry")

        for entity in [*kept_localities, *kept_subdivisions]:
            shapely.prepare(entity.geometry)

        log_event(
            logger,
            "geometry store loaded",
            event="STORE_LOADED",
            status="ok" if not issues else "partial",
            rows_in=len(localities) + len(subdivisions),
            rows_out=len(kept_localities) + len(kept_subdivisions),
        )
        return cls(kept_localities, kept_subdivisions, issues)

    def locality(self, locality_id: Hashable) -> Locality:
        return self._locality_by_id[locality_id]

    def subdivision(self, key: Hashable) -> Subdivision:
        return self._subdivision_by_key[key]

    def subdivision_at(self, ordinal: int) -> Subdivision:
        return self.subdivisions[ordinal]

    def query(self, geometry: BaseGeometry) -> list[int]:
        """Ordinals of subdivisions whose envelope overlaps and whose geometry intersects `geometry`."""
        hits = self._tree.query(geometry, predicate="intersects")
        return sorted(int(ordinal) for ordinal in hits)


def _accept_geometry(
    geometry: BaseGeometry | None,
    entity: str,
    key: Hashable,
    issues: list[OverlayIssue],
    logger: logging.Logger,
) -> bool:
    try:
        check_geometry(geometry, entity=entity, key=key)
    except InvalidGeometryError as exc:
        issues.append(OverlayIssue(code=ISSUE_INVALID_GEOMETRY, entity=exc.entity, key=exc.key, detail=str(exc)))
        log_event(
            logger,
            f"excluded {entity} with invalid geometry: {exc}",
            level=logging.WARNING,
            event="GEOMETRY_EXCLUDED",
            status="warning",
            entity=entity,
            key=key,
            error_code=exc.error_code,
        )
        return False
    return True
