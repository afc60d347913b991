#!/usr/bin/env python3
"""
List the Outlook calendars of the configured mailbox.

Usage:
    uv run python src/scripts/list_calendars.py
    uv run python src/scripts/list_calendars.py --user someone@example.com
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import OUTLOOK_USER_ID
from services.calendar import list_user_calendars


async def main(user_id: str):
    """List the calendars of one mailbox."""
    print(f"Fetching calendars for {user_id}...\n")
    calendars = await list_user_calendars(user_id)

    print(f"Found {len(calendars)} calendar(s)")
    print("=" * 80)
    for cal in calendars:
        marker = " (default)" if cal["is_default"] else ""
        print(f"  - {cal['calendar_name']}{marker}")
        print(f"    ID: {cal['calendar_id']}")
        if cal["owner"]:
            print(f"    Owner: {cal['owner']}")
    print("-" * 80)

    print("\nDone!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="List Outlook calendars")
    parser.add_argument("--user", default=OUTLOOK_USER_ID, help="Mailbox UPN or object id")
    args = parser.parse_args()

    if not args.user:
        parser.error("--user is required when OUTLOOK_USER_ID is not set")

    asyncio.run(main(args.user))
