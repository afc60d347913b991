"""Tests for the fetch, distribute and describe pipeline."""

from datetime import date

import pytest

from core.dates import InputError
from fixtures.activity import FakeActivityProvider, FakeCalendarProvider, make_meeting, make_payload
from models.activity import ProviderKind
from services.timesheet import collect_activity, parse_mode

DAYS = [date(2025, 11, 3), date(2025, 11, 4), date(2025, 11, 5)]


@pytest.mark.asyncio
async def test_collect_activity_distributes_and_describes(cache, today):
    gitlab = FakeActivityProvider(ProviderKind.GITLAB, {"2025-11-05": make_payload(commits=3, project="web")})
    outlook = FakeCalendarProvider(
        ProviderKind.OUTLOOK_CALENDAR, {"2025-11-05": [make_meeting(DAYS[2], title="Retro")]}
    )

    result = await collect_activity(DAYS, cache, mode="proportional", providers=([gitlab], [outlook]), today=today)

    assert [d.day for d in result.days] == DAYS
    assert "[Distributed]" in result.days[0].description
    assert result.days[2].description.startswith("Attended Retro.")
    assert result.summary.gap_days_count == 2
    assert result.cache_stats.total_requests == 6
    # Flushed on exit
    assert cache.path.exists()


@pytest.mark.asyncio
async def test_collect_activity_rejects_unknown_mode_before_fetch(cache, today):
    gitlab = FakeActivityProvider(ProviderKind.GITLAB)

    with pytest.raises(InputError, match="distribution mode"):
        await collect_activity(DAYS, cache, mode="random", providers=([gitlab], []), today=today)
    assert gitlab.calls == []


def test_parse_mode():
    assert parse_mode("phased").value == "phased"
    with pytest.raises(InputError):
        parse_mode("")


@pytest.mark.asyncio
async def test_collect_activity_rejects_empty_days_before_cache_io(cache, today, monkeypatch):
    gitlab = FakeActivityProvider(ProviderKind.GITLAB)

    async def fail_load():
        raise AssertionError("cache file read for an invalid request")

    monkeypatch.setattr(cache, "load", fail_load)

    with pytest.raises(InputError, match="At least one day"):
        await collect_activity([], cache, providers=([gitlab], []), today=today)
    assert not cache.path.exists()
    assert gitlab.calls == []


@pytest.mark.asyncio
async def test_collect_activity_without_providers_leaves_cache_alone(cache, today):
    with pytest.raises(InputError, match="No providers enabled"):
        await collect_activity(DAYS, cache, providers=([], []), today=today)
    assert not cache.path.exists()
