"""Run identifiers and entity key normalisation."""

from __future__ import annotations

import re

from depindex.common.time_utils import utc_now

# Whole numbers written out as floats, e.g. "7000001.0" from a spreadsheet export.
_WHOLE_FLOAT_TEXT = re.compile(r"^([+-]?\d+)\.0*$")


def generate_run_id() -> str:
    return utc_now().strftime("run-%Y%m%dT%H%M%S%fZ")


def normalise_key(value: object) -> str | None:
    """String form of an entity key; whole-number floats lose their `.0`.

    Applies to float values and to text such as "7000001.0". Other text,
    leading zeros included, is only stripped of surrounding whitespace.
    """
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    match = _WHOLE_FLOAT_TEXT.match(text)
    if match:
        text = match.group(1)
    return text or None
