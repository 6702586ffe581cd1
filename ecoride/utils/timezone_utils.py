"""Centralized Timezone Utilities - All datetime operations should use these functions."""

from datetime import date, datetime, time, timezone
from typing import Union

UTC = timezone.utc


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes (legacy documents) as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def search_lower_bound(requested: Union[date, datetime, None], now: datetime) -> datetime:
    """
    Earliest departure a search may return.

    A requested date never moves the bound into the past: the result is
    max(requested, now). Plain dates start at midnight UTC.
    """
    if requested is None:
        return now

    if isinstance(requested, datetime):
        requested_dt = ensure_utc(requested)
    else:
        requested_dt = datetime.combine(requested, time.min, tzinfo=UTC)

    return max(requested_dt, now)
