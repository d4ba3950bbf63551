"""Timestamp and identifier helpers.

All timestamps are stored as ISO 8601 strings in UTC. Day boundaries
(today, start of week) are computed in UTC as well.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Current time as an ISO 8601 string."""
    return utc_now().isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp into an aware UTC datetime.

    Accepts a trailing "Z" and naive values (treated as UTC).

    Raises:
        ValueError: If value is not an ISO 8601 timestamp
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def day_key(moment: datetime) -> str:
    """YYYY-MM-DD of a datetime, in UTC."""
    return moment.astimezone(timezone.utc).date().isoformat()


def start_of_day(moment: datetime) -> datetime:
    """Midnight UTC of the day containing moment."""
    moment = moment.astimezone(timezone.utc)
    return datetime(moment.year, moment.month, moment.day, tzinfo=timezone.utc)


def start_of_week(moment: datetime) -> datetime:
    """Midnight UTC of the Sunday starting the week containing moment."""
    day_start = start_of_day(moment)
    # isoweekday: Monday=1 .. Sunday=7
    return day_start - timedelta(days=day_start.isoweekday() % 7)


def days_between(earlier: date, later: date) -> int:
    """Whole days from earlier to later."""
    return (later - earlier).days


def generate_id(prefix: str) -> str:
    """Short unique identifier, e.g. "deck_3f9a1c2b7d4e"."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"
