"""Left-outer join of subdivision attributes onto overlap pairs."""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Any, Iterable, Mapping, Sequence

from depindex.common.constants import ISSUE_INVALID_ATTRIBUTE, ISSUE_MISSING_JOIN_ATTRIBUTE
from depindex.common.errors import ConfigError, DuplicateKeyError
from depindex.common.ids import normalise_key
from depindex.common.models import MISSING_ATTRIBUTES, OverlapPair, OverlayIssue, SubdivisionAttributes

MISSING_MARKERS = {"", "na", "nan", "null", "none", "-"}


def parse_number(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.lower() in MISSING_MARKERS:
            return None
        value = text.replace(",", "")
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_attributes(
    row: Mapping[str, Any],
    field_map: Mapping[str, str],
) -> tuple[SubdivisionAttributes, list[str]]:
    """Typed attributes for one table row plus the names of fields that were rejected."""
    rejected: list[str] = []

    raw_score = row.get(field_map["score_field"])
    score = parse_number(raw_score)
    if score is None and _is_present(raw_score):
        rejected.append(field_map["score_field"])

    raw_decile = row.get(field_map["decile_field"])
    decile_number = parse_number(raw_decile)
    decile: int | None = None
    if decile_number is not None and decile_number.is_integer() and 1 <= decile_number <= 10:
        decile = int(decile_number)
    elif _is_present(raw_decile):
        rejected.append(field_map["decile_field"])

    raw_population = row.get(field_map["population_field"])
    population = parse_number(raw_population)
    if population is not None and population < 0:
        population = None
    if population is None and _is_present(raw_population):
        rejected.append(field_map["population_field"])

    return (
        SubdivisionAttributes(
            deprivation_score=score,
            deprivation_decile=decile,
            urban_rural_population=population,
        ),
        rejected,
    )


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() not in MISSING_MARKERS
    if isinstance(value, float):
        return not math.isnan(value)
    return True


def build_attribute_index(
    rows: Iterable[Mapping[str, Any]],
    field_map: Mapping[str, str],
) -> tuple[dict[str, SubdivisionAttributes], list[OverlayIssue]]:
    """Key the attribute table by subdivision key as a string."""
    key_field = field_map["key_field"]
    index: dict[str, SubdivisionAttributes] = {}
    issues: list[OverlayIssue] = []
    dupes: set[str] = set()

    for position, row in enumerate(rows):
        if key_field not in row:
            raise ConfigError(f"Attribute table has no key column {key_field!r}")
        key = normalise_key(row.get(key_field))
        if key is None:
            issues.append(
                OverlayIssue(
                    code=ISSUE_INVALID_ATTRIBUTE,
                    entity="attribute_row",
                    key=position,
                    detail="missing subdivision key",
                )
            )
            continue
        if key in index:
            dupes.add(key)
            continue

        attributes, rejected = parse_attributes(row, field_map)
        index[key] = attributes
        if rejected:
            issues.append(
                OverlayIssue(
                    code=ISSUE_INVALID_ATTRIBUTE,
                    entity="subdivision",
                    key=key,
                    detail="unusable values in " + ", ".join(rejected),
                )
            )

    if dupes:
        raise DuplicateKeyError(f"Duplicate attribute keys: {', '.join(sorted(dupes))}")
    return index, issues


def join_attributes(
    pairs: Sequence[OverlapPair],
    index: Mapping[str, SubdivisionAttributes],
) -> tuple[list[OverlapPair], list[OverlayIssue]]:
    joined: list[OverlapPair] = []
    missing: dict[str, None] = {}
    for pair in pairs:
        key = normalise_key(pair.subdivision_key)
        attributes = index.get(key) if key is not None else None
        if attributes is None:
            missing.setdefault(key, None)
            attributes = MISSING_ATTRIBUTES
        joined.append(replace(pair, attributes=attributes))

    issues = [
        OverlayIssue(
            code=ISSUE_MISSING_JOIN_ATTRIBUTE,
            entity="subdivision",
            key=key,
            detail="no attribute row for subdivision",
        )
        for key in missing
    ]
    return joined, issues
