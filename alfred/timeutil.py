"""Local-time helpers.

Slots and intents travel through the system as bare local datetimes
("YYYY-MM-DDTHH:MM:SS"). A trailing ``Z``, UTC offset or fractional seconds
are stripped before interpretation and the remaining numbers are taken
literally; nothing here applies timezone arithmetic to a slot.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from .config import settings

_TZ_SUFFIX = re.compile(r"(\.\d+)?([Zz]|[+-]\d{2}:?\d{2})$")


def strip_tz_suffix(dt: str) -> str:
    """Drop milliseconds and any ``Z`` / ``+HH:MM`` suffix.

    >>> strip_tz_suffix("2026-02-09T10:00:00.000Z")
    '2026-02-09T10:00:00'
    >>> strip_tz_suffix("2026-02-09T10:00:00-05:00")
    '2026-02-09T10:00:00'
    """
    return _TZ_SUFFIX.sub("", dt.strip())


def parse_local(dt: str) -> datetime:
    """Parse a local-time string into a naive datetime."""
    clean = strip_tz_suffix(dt)
    if "T" not in clean:
        clean = f"{clean}T00:00:00"
    return datetime.fromisoformat(clean)


def to_local_string(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%S")


def add_hours_local(local_dt: str, hours: float) -> str:
    """Add ``hours`` to a bare local datetime string, returning the same format."""
    return to_local_string(parse_local(local_dt) + timedelta(hours=hours))


def local_hour(dt: str) -> int:
    return parse_local(dt).hour


def minutes_between(a: str, b: str) -> float:
    """Absolute distance between two local-time strings, in minutes."""
    return abs((parse_local(a) - parse_local(b)).total_seconds()) / 60.0


def format_slot(dt: str, with_year: bool = False) -> str:
    """Human readable slot, e.g. ``Tue, Feb 10, 2:00 PM``."""
    value = parse_local(dt)
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    day = f"{value:%a}, {value:%b} {value.day}"
    if with_year:
        day = f"{day}, {value.year}"
    return f"{day}, {hour}:{value:%M} {suffix}"


def format_for_user(dt: str) -> str:
    return format_slot(dt, with_year=True)


def today_and_tomorrow(tz_name: Optional[str] = None) -> Tuple[date, date]:
    """Local calendar dates for today and tomorrow in the user's timezone."""
    now = datetime.now(ZoneInfo(tz_name or settings.user_timezone))
    today = now.date()
    return today, today + timedelta(days=1)


def normalize_hhmm(value: str) -> str:
    """``"9:00"`` / ``"09:00:00"`` -> ``"09:00"``."""
    parts = value.strip().split(":")
    minute = parts[1][:2] if len(parts) > 1 else "00"
    return f"{int(parts[0]):02d}:{minute}"
