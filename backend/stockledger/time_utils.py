# Overview: UTC timestamp helpers for movement decisions, query filters and JSON output.

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC; every stored timestamp (created_at, decided_at) uses this."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def window_start(days: int) -> datetime:
    """Start of a trailing window of `days` ending now, for 'recent' counters."""
    return utcnow() - timedelta(days=days)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a date_from/date_to style value into naive UTC.

    Blank -> None. Offsets (including a trailing Z) are converted to UTC;
    values without an offset are taken as UTC already.
    Raises ValueError for anything fromisoformat rejects.
    """
    text = (value or "").strip()
    if not text:
        return None

    if text[-1] in ("Z", "z"):
        text = f"{text[:-1]}+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Render a stored timestamp as second-precision ISO-8601 with a Z suffix."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"
