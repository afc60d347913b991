"""
Caller-input validation.

Everything here runs before any provider or cache I/O and raises InputError.
"""

from collections import Counter
from datetime import date

from core.config import MAX_DAYS_PER_REQUEST
from core.dates import InputError, days_in_range, parse_day_key, working_days


def validate_day_keys(day_keys: list[str]) -> list[date]:
    """
    Check a requested day set.

    Checks:
    1. At least one day was requested
    2. Every key is strict YYYY-MM-DD
    3. No day is requested twice
    """
    if not day_keys:
        raise InputError("At least one day is required")

    days = [parse_day_key(key) for key in day_keys]

    duplicates = sorted(key for key, count in Counter(day_keys).items() if count > 1)
    if duplicates:
        raise InputError(f"Duplicate days requested: {', '.join(duplicates)}")

    return days


def resolve_date_range(
    start_date: str,
    end_date: str | None = None,
    working_days_only: bool = True,
    max_days: int = MAX_DAYS_PER_REQUEST,
) -> list[date]:
    """
    Expand start/end keys into the list of days to fetch.

    A missing end_date means a single-day request.
    """
    start = parse_day_key(start_date)
    end = parse_day_key(end_date) if end_date else start

    if start > end:
        raise InputError("start_date must be before or equal to end_date")

    days = days_in_range(start, end)
    if len(days) > max_days:
        raise InputError(f"Date range spans {len(days)} days; the maximum is {max_days}")

    if working_days_only:
        days = working_days(days)
        if not days:
            raise InputError(f"No working days between {start_date} and {end_date or start_date}")

    return days
