"""Tests for the JSON-file activity cache."""

import asyncio
import json
import os
import stat

import pytest

from core.cache import ActivityCache
from core.dates import InputError
from models.activity import ProviderKind


@pytest.mark.asyncio
async def test_set_then_get_is_a_hit(cache):
    await cache.set(ProviderKind.GITLAB, "2025-11-03", {"commits": []})

    data, found = cache.get(ProviderKind.GITLAB, "2025-11-03")

    assert found is True
    assert data == {"commits": []}
    assert cache.stats().hits == {"gitlab": 1}


@pytest.mark.asyncio
async def test_entry_expires_only_after_ttl(cache, clock):
    await cache.set(ProviderKind.GITLAB, "2025-11-03", {"x": 1})

    clock.now += 3600
    assert cache.get(ProviderKind.GITLAB, "2025-11-03")[1] is True

    clock.now += 1
    assert cache.get(ProviderKind.GITLAB, "2025-11-03") == (None, False)
    # Evicted on the way out
    assert cache.info()["entries"]["gitlab"] == 0


@pytest.mark.asyncio
async def test_namespaces_are_isolated(cache):
    await cache.set(ProviderKind.GITLAB, "2025-11-03", {"from": "gitlab"})

    assert cache.get(ProviderKind.GITHUB, "2025-11-03") == (None, False)
    assert cache.get("gitlab", "2025-11-03") == ({"from": "gitlab"}, True)


@pytest.mark.asyncio
async def test_clear_calendars_keeps_code_host_entries(cache):
    await cache.set(ProviderKind.GITLAB, "2025-11-03", {})
    await cache.set(ProviderKind.OUTLOOK_CALENDAR, "2025-11-03", [])
    await cache.set(ProviderKind.GOOGLE_CALENDAR, "2025-11-03", [])

    await cache.clear("calendars")

    entries = cache.info()["entries"]
    assert entries == {"gitlab": 1, "github": 0, "google_calendar": 0, "outlook_calendar": 0}


@pytest.mark.asyncio
async def test_clear_single_kind(cache):
    await cache.set(ProviderKind.GITLAB, "2025-11-03", {})
    await cache.set(ProviderKind.GITHUB, "2025-11-03", {})

    await cache.clear(ProviderKind.GITHUB)

    assert cache.info()["entries"]["github"] == 0
    assert cache.info()["entries"]["gitlab"] == 1


@pytest.mark.asyncio
async def test_clear_expired_sweeps_only_stale_entries(cache, clock):
    await cache.set(ProviderKind.GITLAB, "2025-11-03", {})
    clock.now += 3000
    await cache.set(ProviderKind.GITLAB, "2025-11-04", {})
    clock.now += 1000

    await cache.clear("expired")

    assert cache.get(ProviderKind.GITLAB, "2025-11-03")[1] is False
    assert cache.get(ProviderKind.GITLAB, "2025-11-04")[1] is True


@pytest.mark.asyncio
async def test_clear_all_resets_stats(cache):
    await cache.set(ProviderKind.GITLAB, "2025-11-03", {})
    cache.get(ProviderKind.GITLAB, "2025-11-03")
    cache.get(ProviderKind.GITLAB, "2025-11-04")

    await cache.clear("all")

    assert cache.stats().total_requests == 0
    assert cache.info()["entries"]["gitlab"] == 0


@pytest.mark.asyncio
async def test_clear_unknown_scope_raises(cache):
    with pytest.raises(InputError, match="Unknown cache scope"):
        await cache.clear("bitbucket")


@pytest.mark.asyncio
async def test_stats_hit_rate(cache):
    await cache.set(ProviderKind.GITLAB, "2025-11-03", {})
    cache.get(ProviderKind.GITLAB, "2025-11-03")
    cache.get(ProviderKind.GITLAB, "2025-11-04")
    cache.get(ProviderKind.OUTLOOK_CALENDAR, "2025-11-04")

    stats = cache.stats().to_dict()

    assert stats["total_hits"] == 1
    assert stats["total_requests"] == 3
    assert stats["hit_rate"] == 33.3
    assert stats["per_kind"]["gitlab"] == {"hits": 1, "misses": 1}
    assert stats["per_kind"]["outlook_calendar"] == {"hits": 0, "misses": 1}


@pytest.mark.asyncio
async def test_persists_across_instances(tmp_path, clock):
    path = tmp_path / "cache.json"
    first = ActivityCache(path, ttl_seconds=3600, clock=clock)
    async with first:
        await first.set(ProviderKind.GITHUB, "2025-11-03", {"commits": [1]})

    second = ActivityCache(path, ttl_seconds=3600, clock=clock)
    async with second:
        assert second.get(ProviderKind.GITHUB, "2025-11-03") == ({"commits": [1]}, True)

    on_disk = json.loads(path.read_text())
    assert on_disk["github"]["2025-11-03"]["source"] == "github"
    assert on_disk["github"]["2025-11-03"]["timestamp"] == clock.now


@pytest.mark.asyncio
async def test_file_is_owner_only(cache):
    await cache.set(ProviderKind.GITLAB, "2025-11-03", {})

    mode = stat.S_IMODE(os.stat(cache.path).st_mode)
    assert mode == 0o600


@pytest.mark.asyncio
async def test_corrupt_file_starts_empty(tmp_path, clock):
    path = tmp_path / "cache.json"
    path.write_text("{not json")
    cache = ActivityCache(path, clock=clock)

    async with cache:
        assert cache.get(ProviderKind.GITLAB, "2025-11-03") == (None, False)
        await cache.set(ProviderKind.GITLAB, "2025-11-03", {})

    assert "gitlab" in json.loads(path.read_text())


@pytest.mark.asyncio
async def test_unknown_namespaces_in_file_are_dropped(tmp_path, clock):
    path = tmp_path / "cache.json"
    path.write_text(json.dumps({"svn": {"2025-11-03": {}}, "gitlab": {}}))
    cache = ActivityCache(path, clock=clock)

    await cache.load()

    assert "svn" not in cache.info()["entries"]
    assert cache.info()["entries"]["gitlab"] == 0


@pytest.mark.asyncio
async def test_nested_context_loads_once(tmp_path, clock):
    path = tmp_path / "cache.json"
    cache = ActivityCache(path, clock=clock)

    async with cache:
        await cache.set(ProviderKind.GITLAB, "2025-11-03", {"a": 1})
        async with cache:
            # An inner enter must not reload and lose in-memory entries
            assert cache.get(ProviderKind.GITLAB, "2025-11-03")[1] is True


@pytest.mark.asyncio
async def test_overlapping_scopes_share_one_load(tmp_path, clock):
    path = tmp_path / "cache.json"
    cache = ActivityCache(path, clock=clock)

    async def request(day_key):
        async with cache:
            await asyncio.sleep(0)
            await cache.set(ProviderKind.GITLAB, day_key, {"day": day_key})

    await asyncio.gather(request("2025-11-03"), request("2025-11-04"))

    assert cache.info()["entries"]["gitlab"] == 2

    reopened = ActivityCache(path, clock=clock)
    await reopened.load()
    assert reopened.get(ProviderKind.GITLAB, "2025-11-03") == ({"day": "2025-11-03"}, True)
    assert reopened.get(ProviderKind.GITLAB, "2025-11-04") == ({"day": "2025-11-04"}, True)


@pytest.mark.asyncio
async def test_concurrent_sets_leave_a_complete_file(cache, clock):
    day_keys = [f"2025-11-{n:02d}" for n in range(1, 21)]

    await asyncio.gather(*(cache.set(ProviderKind.GITHUB, key, {"day": key}) for key in day_keys))

    # Parses cleanly
    json.loads(cache.path.read_text())

    reopened = ActivityCache(cache.path, clock=clock)
    await reopened.load()
    for key in day_keys:
        assert reopened.get(ProviderKind.GITHUB, key) == ({"day": key}, True)
