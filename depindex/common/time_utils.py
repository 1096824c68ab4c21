"""UTC clock helpers for run metadata and stage timings."""

from __future__ import annotations

import time
from datetime import date, datetime, timezone

from depindex.common.errors import ConfigError


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def parse_run_date(value: str | None) -> str:
    """ISO run date, defaulting to today in UTC."""
    if not value:
        return utc_now().date().isoformat()
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError as exc:
        raise ConfigError(f"Run date must be an ISO date (YYYY-MM-DD), got {value!r}") from exc


def log_timestamp() -> str:
    return utc_now().isoformat(timespec="milliseconds")


def elapsed_ms(started: float) -> int:
    """Milliseconds since a `time.perf_counter()` reading."""
    return int((time.perf_counter() - started) * 1000)
