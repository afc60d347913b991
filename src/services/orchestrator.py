"""
Concurrent, cache-checked fetch of per-day activity from every enabled provider.

All days run concurrently and, within a day, all providers run concurrently.
A provider failure is logged and replaced by an empty result; it never fails
the day or the request.
"""

import asyncio
import logging
from datetime import date, tzinfo
from typing import Any, Awaitable, Callable

from core.cache import ActivityCache
from core.dates import InputError, format_day_key, local_today
from core.validation import validate_day_keys
from models.activity import ActivityPayload, CalendarEvent, DayActivity, ProviderKind
from services.providers import ActivityProvider, CalendarProvider

log = logging.getLogger(__name__)


def _encode_events(events: list[CalendarEvent]) -> list[dict]:
    return [event.to_dict() for event in events]


def _decode_events(data: list[dict]) -> list[CalendarEvent]:
    return [CalendarEvent.from_dict(item) for item in data]


class FetchOrchestrator:
    """
    Produces one DayActivity per requested day.

    activity_providers are merged in list order; calendar_providers are tried
    in list order, falling through to the next one only when a provider
    yields no events.
    """

    def __init__(
        self,
        cache: ActivityCache,
        activity_providers: list[ActivityProvider],
        calendar_providers: list[CalendarProvider],
        force_refresh: bool = False,
        tz: tzinfo | None = None,
        today: date | None = None,
    ):
        self.cache = cache
        self.activity_providers = list(activity_providers)
        self.calendar_providers = list(calendar_providers)
        self.force_refresh = force_refresh
        self.tz = tz
        self.today = today

    async def fetch_days(self, day_keys: list[str]) -> list[DayActivity]:
        """
        Fetch every day concurrently, preserving the input order.

        Raises:
            InputError: malformed or empty day set, or no providers enabled
        """
        days = validate_day_keys(day_keys)
        if not self.activity_providers and not self.calendar_providers:
            raise InputError("No providers enabled")

        today = self.today or local_today(self.tz)
        sources = [p.kind.value for p in self.activity_providers + self.calendar_providers]
        log.info(f"Fetching {len(days)} day(s) from {', '.join(sources)}")

        results = await asyncio.gather(*(self._fetch_day(day, today) for day in days))

        cached = sum(1 for r in results for from_cache in r.sources.values() if from_cache)
        fresh = sum(1 for r in results for from_cache in r.sources.values() if not from_cache)
        log.info(f"Fetched {len(results)} day(s): {cached} cache hit(s), {fresh} fresh fetch(es)")
        return list(results)

    async def _fetch_day(self, day: date, today: date) -> DayActivity:
        if day > today:
            log.debug(f"Skipping future date {day}")
            return DayActivity(day=day, is_future=True)

        day_key = format_day_key(day)
        *activity_results, (meetings, calendar_sources) = await asyncio.gather(
            *(self._fetch_activity(provider, day_key) for provider in self.activity_providers),
            self._fetch_calendar(day_key),
        )

        merged = ActivityPayload()
        sources: dict[str, bool] = {}
        for provider, (payload, from_cache) in zip(self.activity_providers, activity_results):
            merged.extend(payload)
            if from_cache is not None:
                sources[provider.kind.value] = from_cache
        sources.update(calendar_sources)

        return DayActivity(day=day, meetings=meetings, activity=merged, sources=sources)

    async def _cached_fetch(
        self,
        kind: ProviderKind,
        day_key: str,
        fetch: Callable[[str], Awaitable[Any]],
        encode: Callable[[Any], Any],
        decode: Callable[[Any], Any],
    ) -> tuple[Any, bool]:
        """Serve from cache when fresh, otherwise call the provider and cache the result."""
        if not self.force_refresh:
            data, found = self.cache.get(kind, day_key)
            if found:
                try:
                    result = decode(data)
                    log.debug(f"{kind.value} ({day_key}) - from cache")
                    return result, True
                except (KeyError, TypeError, ValueError) as e:
                    log.warning(f"{kind.value} ({day_key}) - discarding malformed cache entry: {e}")

        result = await fetch(day_key)
        await self.cache.set(kind, day_key, encode(result))
        return result, False

    async def _fetch_activity(
        self, provider: ActivityProvider, day_key: str
    ) -> tuple[ActivityPayload, bool | None]:
        try:
            payload, from_cache = await self._cached_fetch(
                provider.kind,
                day_key,
                provider.fetch_activity,
                lambda p: p.to_dict(),
                ActivityPayload.from_dict,
            )
        except Exception as e:
            log.warning(f"{provider.kind.value} ({day_key}) - fetch failed: {e}", exc_info=True)
            return ActivityPayload(), None

        if not from_cache:
            log.info(
                f"{provider.kind.value} ({day_key}) - {len(payload.commits)} commits, "
                f"{len(payload.reviews)} reviews, {len(payload.issues)} issues"
            )
        return payload, from_cache

    async def _fetch_calendar(self, day_key: str) -> tuple[list[CalendarEvent], dict[str, bool]]:
        """Walk calendar providers by priority until one yields events."""
        sources: dict[str, bool] = {}
        for provider in self.calendar_providers:
            try:
                events, from_cache = await self._cached_fetch(
                    provider.kind, day_key, provider.fetch_events, _encode_events, _decode_events
                )
            except Exception as e:
                # An error counts as zero events for the fallback decision
                log.warning(f"{provider.kind.value} ({day_key}) - fetch failed: {e}", exc_info=True)
                continue

            sources[provider.kind.value] = from_cache
            if not from_cache:
                log.info(f"{provider.kind.value} ({day_key}) - {len(events)} events")
            if events:
                return events, sources

        return [], sources
