"""
Time Utilities
UTC helpers shared by the assignment, stats and storage layers
"""
from datetime import datetime, timezone, date
from typing import Optional
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC.

    Naive values are treated as UTC (SQLite and some PostgREST columns
    return naive timestamps).
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime) -> str:
    """Serialize to an ISO-8601 UTC string with a 'Z' suffix for query filters."""
    return to_utc(value).isoformat().replace("+00:00", "Z")


def local_date(value: datetime, tz_name: str) -> date:
    """Calendar date of a timestamp in the given timezone."""
    return to_utc(value).astimezone(ZoneInfo(tz_name)).date()
