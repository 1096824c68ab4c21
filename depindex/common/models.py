"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Hashable

from shapely.geometry.base import BaseGeometry


@dataclass(frozen=True)
class Locality:
    id: Hashable
    name: str | None
    geometry: BaseGeometry | None
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Subdivision:
    key: Hashable
    geometry: BaseGeometry | None
    # Declared nominal area in square CRS units, not the digitised polygon area.
    area: float | None
    ordinal: int = -1


@dataclass(frozen=True)
class SubdivisionAttributes:
    deprivation_score: float | None = None
    deprivation_decile: int | None = None
    urban_rural_population: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


MISSING_ATTRIBUTES = SubdivisionAttributes()


@dataclass(frozen=True)
class OverlapPair:
    locality_id: Hashable
    subdivision_key: Hashable
    subdivision_ordinal: int
    intersection_area: float
    overlap_weight: float
    attributes: SubdivisionAttributes = MISSING_ATTRIBUTES

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LocalitySummary:
    locality_id: Hashable
    deprivation_score_mean: float | None = None
    deprivation_decile_mean: float | None = None
    population_weighted: float | None = None
    population_weighted_high_deprivation: float | None = None
    population_pct_high_deprivation: float | None = None

    def values(self) -> dict[str, float | None]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "locality_id"}

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LocalityResult:
    locality: Locality
    summary: LocalitySummary


@dataclass(frozen=True)
class OverlayIssue:
    code: str
    entity: str
    key: Hashable
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        key = list(self.key) if isinstance(self.key, tuple) else self.key
        return {"code": self.code, "entity": self.entity, "key": key, "detail": self.detail}
