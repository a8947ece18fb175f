"""Datetime parsing and freshness helpers shared across the sync stages."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Union


DatetimeInput = Union[str, datetime]

FRESH_WINDOW = timedelta(hours=48)
INGEST_GUARD_WINDOW = timedelta(hours=20)


def to_utc_datetime(
    value: Optional[DatetimeInput], assume_timezone: tzinfo = timezone.utc
) -> Optional[datetime]:
    """
    Coerce a datetime-like value into an aware UTC datetime.

    Args:
        value: ISO string or datetime instance.
        assume_timezone: tzinfo to apply when the value is naive.
    """
    if not value:
        return None

    if isinstance(value, str):
        normalized = value.strip().replace("Z", "+00:00")
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError:
            return None
    elif isinstance(value, datetime):
        parsed = value
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=assume_timezone)

    return parsed.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_fresh(
    last_ingested_at: Optional[DatetimeInput],
    window: timedelta = FRESH_WINDOW,
    now: Optional[datetime] = None,
) -> bool:
    """
    True when ``last_ingested_at`` parses and lies less than ``window`` before ``now``.

    Missing or unparseable timestamps are never fresh.
    """
    parsed = to_utc_datetime(last_ingested_at)
    if parsed is None:
        return False

    current = to_utc_datetime(now) if now is not None else utc_now()
    return current - parsed < window


def current_ingested_at(now: Optional[datetime] = None) -> str:
    """Canonical ISO-8601 UTC instant, millisecond precision with a trailing Z."""
    current = to_utc_datetime(now) if now is not None else utc_now()
    return current.isoformat(timespec="milliseconds").replace("+00:00", "Z")
