"""
Pytest configuration and shared fixtures.
"""

import sys
from datetime import date
from pathlib import Path

import pytest

# Add src and tests to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from fixtures.activity import make_day

from core.cache import ActivityCache


@pytest.fixture(autouse=True)
def utc_timezone(monkeypatch):
    """Bucket every timestamp by UTC day regardless of the host timezone."""
    monkeypatch.setattr("core.dates.TIMEZONE_NAME", "UTC")


@pytest.fixture
def clock():
    """Settable clock for TTL tests."""

    class Clock:
        now = 1_700_000_000.0

        def __call__(self):
            return self.now

    return Clock()


@pytest.fixture
def cache(tmp_path, clock):
    return ActivityCache(tmp_path / "cache.json", ttl_seconds=3600, clock=clock)


@pytest.fixture
def today():
    return date(2025, 11, 28)


@pytest.fixture
def sample_days():
    """Mon-Wed where only Wednesday has work: three commits."""
    return [
        make_day(date(2025, 11, 3)),
        make_day(date(2025, 11, 4)),
        make_day(date(2025, 11, 5), commits=3),
    ]
