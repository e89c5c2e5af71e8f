"""Calendar day ids in the user's local timezone."""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DAY_ID_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_timezone(tz_name: Optional[str], fallback: str = "UTC") -> ZoneInfo:
    """ZoneInfo for ``tz_name``, falling back when it is empty or unknown."""
    for name in (tz_name, fallback, "UTC"):
        if not name:
            continue
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            continue
    return ZoneInfo("UTC")


def day_id_for(now: datetime, tz_name: Optional[str] = None) -> str:
    """
    Day id (YYYY-MM-DD) of ``now`` as seen in the user's timezone.

    Naive datetimes are treated as UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(resolve_timezone(tz_name)).date().isoformat()


def parse_day_id(day_id: str) -> date:
    """Parse a day id, raising ValueError on anything but YYYY-MM-DD."""
    if not isinstance(day_id, str) or not DAY_ID_RE.match(day_id):
        raise ValueError(f"Invalid day id: {day_id!r}")
    return date.fromisoformat(day_id)


def previous_day_id(day_id: str, days: int = 1) -> str:
    return (parse_day_id(day_id) - timedelta(days=days)).isoformat()
