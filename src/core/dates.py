"""
Calendar-day helpers.

All activity is bucketed by the local calendar day, so every provider
timestamp goes through to_local_day_key before it is compared to a day key.
"""

import re
from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

from core.config import DAY_KEY_FORMAT, TIMEZONE_NAME

DAY_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class InputError(ValueError):
    """Caller supplied a malformed or unusable request."""


def get_local_timezone(name: str | None = None) -> tzinfo:
    """Configured timezone, falling back to the system local one."""
    name = TIMEZONE_NAME if name is None else name
    if name:
        return ZoneInfo(name)
    return datetime.now().astimezone().tzinfo


def parse_day_key(value: str) -> date:
    """Parse a strict YYYY-MM-DD key into a date."""
    if not isinstance(value, str) or not DAY_KEY_PATTERN.match(value):
        raise InputError(f"Invalid date '{value}'. Use YYYY-MM-DD format (e.g., 2025-11-27)")
    try:
        return datetime.strptime(value, DAY_KEY_FORMAT).date()
    except ValueError:
        raise InputError(f"Invalid calendar date '{value}'")


def format_day_key(d: date) -> str:
    return d.strftime(DAY_KEY_FORMAT)


def to_local_day_key(timestamp: str | datetime, tz: tzinfo | None = None) -> str:
    """
    Convert a provider timestamp to the local day key.

    Naive timestamps are treated as UTC, which is what the calendar and
    code-hosting APIs return when they omit an offset.
    """
    if isinstance(timestamp, str):
        timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=ZoneInfo("UTC"))
    return format_day_key(timestamp.astimezone(tz or get_local_timezone()).date())


def local_day_bounds(d: date, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """Start of the local day and start of the next one, timezone aware."""
    tz = tz or get_local_timezone()
    start = datetime.combine(d, time.min).replace(tzinfo=tz)
    end = datetime.combine(d + timedelta(days=1), time.min).replace(tzinfo=tz)
    return start, end


def local_today(tz: tzinfo | None = None) -> date:
    return datetime.now(tz or get_local_timezone()).date()


def days_in_range(start: date, end: date) -> list[date]:
    """Every day from start to end inclusive."""
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def is_working_day(d: date) -> bool:
    """
    Sundays never count; Saturdays count only in the first week of the month.
    """
    if d.weekday() == 6:
        return False
    if d.weekday() == 5:
        return d.day <= 7
    return True


def working_days(days: list[date]) -> list[date]:
    return [d for d in days if is_working_day(d)]


def month_days(year: int, month: int) -> list[date]:
    first = date(year, month, 1)
    next_month = date(year + month // 12, month % 12 + 1, 1)
    return days_in_range(first, next_month - timedelta(days=1))


def week_days(any_day: date) -> list[date]:
    """Monday-to-Sunday week containing any_day."""
    monday = any_day - timedelta(days=any_day.weekday())
    return days_in_range(monday, monday + timedelta(days=6))


def parse_month(value: str) -> tuple[int, int]:
    """Parse a strict YYYY-MM month string."""
    match = re.match(r"^(\d{4})-(\d{2})$", value or "")
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise InputError(f"Invalid month '{value}'. Use YYYY-MM format (e.g., 2025-11)")
    return int(match.group(1)), int(match.group(2))
