"""
Provider contracts and construction of the enabled provider set.
"""

from typing import Protocol

from core.config import (
    ENABLED_PROVIDERS,
    GITHUB_TOKEN,
    GITLAB_TOKEN,
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REFRESH_TOKEN,
    GRAPH_APP_ID,
    GRAPH_CLIENT_SECRET,
    GRAPH_TENANT_ID,
    OUTLOOK_USER_ID,
)
from core.dates import InputError
from models.activity import ActivityPayload, CalendarEvent, ProviderKind

# Merge order for code-host payloads and fallback order for calendars
ACTIVITY_PROVIDER_ORDER = [ProviderKind.GITLAB, ProviderKind.GITHUB]
CALENDAR_PRIORITY = [ProviderKind.GOOGLE_CALENDAR, ProviderKind.OUTLOOK_CALENDAR]


class ProviderError(Exception):
    """Transient provider failure: network, expired credentials, rate limit."""

    def __init__(self, kind: ProviderKind, message: str):
        super().__init__(f"{kind.value}: {message}")
        self.kind = kind


class ActivityProvider(Protocol):
    """Code host returning commits, review actions and issue actions for a day."""

    kind: ProviderKind

    async def fetch_activity(self, day_key: str) -> ActivityPayload: ...


class CalendarProvider(Protocol):
    """Calendar host returning the meetings of a day."""

    kind: ProviderKind

    async def fetch_events(self, day_key: str) -> list[CalendarEvent]: ...


def is_configured(kind: ProviderKind) -> bool:
    """Whether credentials for a provider are present in the environment."""
    if kind == ProviderKind.GITLAB:
        return bool(GITLAB_TOKEN)
    if kind == ProviderKind.GITHUB:
        return bool(GITHUB_TOKEN)
    if kind == ProviderKind.GOOGLE_CALENDAR:
        return all([GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REFRESH_TOKEN])
    if kind == ProviderKind.OUTLOOK_CALENDAR:
        return all([GRAPH_TENANT_ID, GRAPH_APP_ID, GRAPH_CLIENT_SECRET, OUTLOOK_USER_ID])
    return False


def parse_provider_names(names: list[str]) -> list[ProviderKind]:
    kinds = []
    for name in names:
        try:
            kinds.append(ProviderKind(name.strip().lower()))
        except ValueError:
            valid = ", ".join(kind.value for kind in ProviderKind)
            raise InputError(f"Unknown provider '{name}'. Expected one of: {valid}")
    return kinds


def _create(kind: ProviderKind):
    # Imported lazily so a missing optional SDK only matters when its provider is used
    if kind == ProviderKind.GITLAB:
        from services.gitlab import GitLabProvider

        return GitLabProvider()
    if kind == ProviderKind.GITHUB:
        from services.github import GitHubProvider

        return GitHubProvider()
    if kind == ProviderKind.GOOGLE_CALENDAR:
        from services.google_calendar import GoogleCalendarProvider

        return GoogleCalendarProvider()
    from services.calendar import OutlookCalendarProvider

    return OutlookCalendarProvider()


def build_providers(
    names: list[str] | None = None,
) -> tuple[list[ActivityProvider], list[CalendarProvider]]:
    """
    Build the enabled adapters.

    Explicitly named providers must be configured; with no names, every
    configured provider is enabled. Returned lists are in merge order and
    calendar priority order respectively.

    Raises:
        InputError: unknown or unconfigured provider, or nothing enabled
    """
    names = names if names is not None else ENABLED_PROVIDERS

    if names:
        requested = set(parse_provider_names(names))
        missing = [kind.value for kind in requested if not is_configured(kind)]
        if missing:
            raise InputError(f"Provider(s) not configured: {', '.join(sorted(missing))}")
    else:
        requested = {kind for kind in ProviderKind if is_configured(kind)}

    if not requested:
        raise InputError("No providers are configured. Set credentials in the environment or .env")

    activity_providers = [_create(kind) for kind in ACTIVITY_PROVIDER_ORDER if kind in requested]
    calendar_providers = [_create(kind) for kind in CALENDAR_PRIORITY if kind in requested]
    return activity_providers, calendar_providers
