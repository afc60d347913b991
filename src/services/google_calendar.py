"""
Google Calendar adapter (Calendar API v3 over REST).

Credentials are a client id/secret pair plus a refresh token captured
elsewhere; an access token is minted on first use and reused until it expires.
"""

import time
from datetime import datetime
from urllib.parse import quote

import httpx

from core.config import (
    GOOGLE_CALENDAR_ID,
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REFRESH_TOKEN,
    PROVIDER_TIMEOUT_SECONDS,
)
from core.dates import local_day_bounds, parse_day_key
from models.activity import CalendarEvent, ProviderKind
from services.providers import ProviderError

TOKEN_URL = "https://oauth2.googleapis.com/token"
CALENDAR_API_URL = "https://www.googleapis.com/calendar/v3"


def parse_event(item: dict) -> CalendarEvent | None:
    """Parse a Calendar API event; all-day events (no dateTime) return None."""
    start = (item.get("start") or {}).get("dateTime")
    end = (item.get("end") or {}).get("dateTime")
    if not start or not end:
        return None
    return CalendarEvent(
        title=item.get("summary") or "Untitled Event",
        start=datetime.fromisoformat(start.replace("Z", "+00:00")),
        end=datetime.fromisoformat(end.replace("Z", "+00:00")),
        attendees=len(item.get("attendees") or []),
    )


class GoogleCalendarProvider:
    kind = ProviderKind.GOOGLE_CALENDAR

    def __init__(
        self,
        client_id: str = GOOGLE_CLIENT_ID,
        client_secret: str = GOOGLE_CLIENT_SECRET,
        refresh_token: str = GOOGLE_REFRESH_TOKEN,
        calendar_id: str = GOOGLE_CALENDAR_ID,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.calendar_id = calendar_id
        self._transport = transport
        self._access_token: str | None = None
        self._expires_at = 0.0

    async def _token(self, client: httpx.AsyncClient) -> str:
        if self._access_token and time.time() < self._expires_at - 60:
            return self._access_token

        response = await client.post(
            TOKEN_URL,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": self.refresh_token,
                "grant_type": "refresh_token",
            },
        )
        if response.status_code in (400, 401):
            raise ProviderError(self.kind, "refresh token rejected, re-authenticate")
        response.raise_for_status()
        data = response.json()
        self._access_token = data["access_token"]
        self._expires_at = time.time() + data.get("expires_in", 3600)
        return self._access_token

    async def fetch_events(self, day_key: str) -> list[CalendarEvent]:
        start, end = local_day_bounds(parse_day_key(day_key))

        try:
            async with httpx.AsyncClient(
                timeout=PROVIDER_TIMEOUT_SECONDS, transport=self._transport
            ) as client:
                token = await self._token(client)
                response = await client.get(
                    f"{CALENDAR_API_URL}/calendars/{quote(self.calendar_id, safe='')}/events",
                    params={
                        "timeMin": start.isoformat(),
                        "timeMax": end.isoformat(),
                        "singleEvents": "true",
                        "orderBy": "startTime",
                        "maxResults": 250,
                    },
                    headers={"Authorization": f"Bearer {token}"},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 401:
                self._access_token = None
                raise ProviderError(self.kind, "authentication expired, re-authenticate") from e
            raise ProviderError(self.kind, f"HTTP {e.response.status_code} from {e.request.url}") from e
        except httpx.RequestError as e:
            raise ProviderError(self.kind, f"request failed: {e}") from e

        events = []
        for item in response.json().get("items", []):
            event = parse_event(item)
            if event is not None:
                events.append(event)
        return events
