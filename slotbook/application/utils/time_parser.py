from __future__ import annotations

import re
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from slotbook.application.exceptions import InvalidInputError

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_date(value: date | str) -> date:
    """Accept a date or an ISO string (YYYY-MM-DD)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as e:
        raise InvalidInputError(f"Malformed date: {value!r}. Expected YYYY-MM-DD.") from e


def parse_time(value: time | str) -> time:
    """Accept a time or an HH:MM string."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    match = _TIME_RE.match(str(value).strip())
    if not match:
        raise InvalidInputError(f"Malformed time: {value!r}. Expected HH:MM.")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise InvalidInputError(f"Time out of range: {value!r}")
    return time(hour=hour, minute=minute)


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def local_datetime(day: date, at: time, timezone: ZoneInfo) -> datetime:
    return datetime.combine(day, at, tzinfo=timezone)


def safe_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except Exception:
        return ZoneInfo("UTC")
