"""
Timezone normalization.

Discovery ordering, ranks and "time since last discovery" all compare timestamps,
so every datetime that enters the engines is made timezone-aware first. Mixing
naive and aware datetimes raises in Python.
"""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_tz(dt: datetime, tz: str = "UTC") -> datetime:
    """Ensure `dt` has tzinfo; attach `tz` if naive."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=ZoneInfo(tz))
    return dt


def seconds_between(earlier: datetime, later: datetime) -> int:
    """Whole seconds from `earlier` to `later` (floored)."""
    delta = ensure_tz(later) - ensure_tz(earlier)
    return int(delta.total_seconds() // 1)
