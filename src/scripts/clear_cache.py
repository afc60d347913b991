#!/usr/bin/env python3
"""
Clear cached provider data.

Usage:
    uv run python src/scripts/clear_cache.py                 # everything
    uv run python src/scripts/clear_cache.py --scope calendars
    uv run python src/scripts/clear_cache.py --scope expired
    uv run python src/scripts/clear_cache.py --info
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.cache import CLEAR_SCOPES, SCOPE_ALL, ActivityCache


async def main(scope: str, info_only: bool = False):
    cache = ActivityCache()
    async with cache:
        if not info_only:
            await cache.clear(scope)
            print(f"Cleared cache scope '{scope}'")
        info = cache.info()

    print(f"\nCache file: {info['cache_file']} (TTL {info['ttl_seconds']}s)")
    for kind, count in info["entries"].items():
        print(f"  {kind}: {count} entries")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Clear cached provider data")
    parser.add_argument("--scope", default=SCOPE_ALL, choices=CLEAR_SCOPES)
    parser.add_argument("--info", action="store_true", help="Show entry counts without clearing")
    args = parser.parse_args()

    asyncio.run(main(args.scope, args.info))
