#!/usr/bin/env python3
"""
Collect per-day activity and meetings for a timesheet period.

Fetches code-host activity (GitLab, GitHub) and meetings (Google Calendar,
Outlook) for every requested day, spreads work from active days over the
quiet days before them, and prints one description per day. Optionally
writes an Excel workbook.

Usage:
    uv run python src/scripts/create_timesheet.py --month 2025-11
    uv run python src/scripts/create_timesheet.py --start 2025-11-03 --end 2025-11-07 --mode phased
    uv run python src/scripts/create_timesheet.py --week 2025-11-05 --output output/week.xlsx
"""

import argparse
import asyncio
import logging
import sys
from datetime import date, timedelta
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.cache import ActivityCache
from core.config import DISTRIBUTION_MODE, LOG_FORMAT, LOG_LEVEL, OUTPUT_DIR
from core.dates import (
    InputError,
    format_day_key,
    local_today,
    month_days,
    parse_day_key,
    parse_month,
    week_days,
    working_days,
)
from core.validation import resolve_date_range
from services.reports import format_date_display, write_activity_workbook
from services.timesheet import collect_activity


# =============================================================================
# DATE UTILITIES
# =============================================================================


def get_timesheet_days(args) -> list[date]:
    """
    Resolve the requested period.

    Precedence: --start/--end, then --month, then --week. With none given,
    the previous month is used.
    """
    if args.start:
        return resolve_date_range(args.start, args.end, working_days_only=not args.all_days)

    if args.week:
        days = week_days(parse_day_key(args.week))
    else:
        if args.month:
            year, month = parse_month(args.month)
        else:
            # Default to previous month
            last_month = local_today().replace(day=1) - timedelta(days=1)
            year, month = last_month.year, last_month.month
        days = month_days(year, month)

    if not args.all_days:
        days = working_days(days)
    return days


# =============================================================================
# MAIN
# =============================================================================


async def main(args):
    """Main entry point."""
    days = get_timesheet_days(args)
    print(f"Collecting activity for {format_day_key(days[0])} to {format_day_key(days[-1])} ({len(days)} days)")

    cache = ActivityCache()
    result = await collect_activity(
        days,
        cache,
        mode=args.mode,
        force_refresh=args.force_refresh,
        provider_names=args.providers.split(",") if args.providers else None,
    )

    print("=" * 80)
    for day in result.days:
        label = f"{format_date_display(day.day)} ({day.day.strftime('%A')})"
        if day.is_future:
            print(f"\n{label}: future day, skipped")
            continue
        print(f"\n{label}")
        print(f"  {day.description or 'No recorded activity.'}")
    print("-" * 80)

    if result.summary.message:
        print(f"\nNote: {result.summary.message}")

    stats = result.cache_stats
    print(f"Cache: {stats.total_hits}/{stats.total_requests} hits ({stats.hit_rate}%)")

    if args.excel or args.output:
        output_path = args.output or (
            OUTPUT_DIR / "timesheets" / f"activity_{format_day_key(days[0])}_{format_day_key(days[-1])}.xlsx"
        )
        write_activity_workbook(result.days, result.summary, output_path)

    print("\nDone!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Collect per-day activity for a timesheet")
    parser.add_argument("--start", help="First day (YYYY-MM-DD)")
    parser.add_argument("--end", help="Last day (YYYY-MM-DD). Defaults to --start.")
    parser.add_argument("--month", help="Target month (YYYY-MM). Defaults to previous month.")
    parser.add_argument("--week", help="Any day (YYYY-MM-DD) in the target Monday-Sunday week")
    parser.add_argument(
        "--mode",
        default=DISTRIBUTION_MODE,
        choices=["proportional", "phased", "none"],
        help="How work from active days is spread over quiet days",
    )
    parser.add_argument(
        "--force-refresh",
        action="store_true",
        help="Ignore cached provider data and fetch again",
    )
    parser.add_argument(
        "--all-days",
        action="store_true",
        help="Include weekends instead of working days only",
    )
    parser.add_argument(
        "--providers",
        help="Comma-separated provider kinds (gitlab,github,google_calendar,outlook_calendar)",
    )
    parser.add_argument("--excel", action="store_true", help="Write an Excel workbook to output/timesheets")
    parser.add_argument("--output", type=Path, help="Write the Excel workbook to this path instead")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    if args.end and not args.start:
        parser.error("--end requires --start")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else LOG_LEVEL,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        asyncio.run(main(args))
    except InputError as e:
        print(f"\nError: {e}")
        sys.exit(2)
