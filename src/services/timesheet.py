"""
End-to-end assembly: resolve days, fetch, distribute, describe.
"""

import logging
from dataclasses import dataclass, field
from datetime import date

from core.cache import ActivityCache, CacheStats
from core.dates import InputError, format_day_key, get_local_timezone
from core.validation import validate_day_keys
from models.activity import DayActivity
from services.distributor import DistributionMode, DistributionSummary, distribute_activities
from services.orchestrator import FetchOrchestrator
from services.providers import ActivityProvider, CalendarProvider, build_providers
from services.reports import describe_day

log = logging.getLogger(__name__)


@dataclass
class TimesheetResult:
    """What a renderer receives: the ordered days and the distribution note."""

    days: list[DayActivity] = field(default_factory=list)
    summary: DistributionSummary = field(default_factory=DistributionSummary)
    cache_stats: CacheStats = field(default_factory=CacheStats)


def parse_mode(value: str | DistributionMode) -> DistributionMode:
    try:
        return DistributionMode(value)
    except ValueError:
        valid = ", ".join(mode.value for mode in DistributionMode)
        raise InputError(f"Unknown distribution mode '{value}'. Expected one of: {valid}")


async def collect_activity(
    days: list[date],
    cache: ActivityCache,
    mode: str | DistributionMode = DistributionMode.PROPORTIONAL,
    force_refresh: bool = False,
    provider_names: list[str] | None = None,
    providers: tuple[list[ActivityProvider], list[CalendarProvider]] | None = None,
    today: date | None = None,
) -> TimesheetResult:
    """
    Fetch and distribute activity for the given days.

    Providers are built from configuration unless passed in. The day set,
    mode and provider configuration are all checked before the cache file
    or any provider is touched.
    """
    mode = parse_mode(mode)
    day_keys = [format_day_key(d) for d in days]
    validate_day_keys(day_keys)
    activity_providers, calendar_providers = providers or build_providers(provider_names)
    if not activity_providers and not calendar_providers:
        raise InputError("No providers enabled")

    orchestrator = FetchOrchestrator(
        cache,
        activity_providers,
        calendar_providers,
        force_refresh=force_refresh,
        tz=get_local_timezone(),
        today=today,
    )

    async with cache:
        fetched = await orchestrator.fetch_days(day_keys)

    result = distribute_activities(fetched, mode)
    for day in result.days:
        day.description = describe_day(day)

    if result.summary.message:
        log.info(result.summary.message)

    return TimesheetResult(days=result.days, summary=result.summary, cache_stats=cache.stats())
