"""
Outlook calendar adapter over MS Graph.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from msgraph.generated.models.o_data_errors.o_data_error import ODataError
from msgraph.generated.users.item.calendar.calendar_view.calendar_view_request_builder import (
    CalendarViewRequestBuilder,
)

from core.config import OUTLOOK_USER_ID
from core.dates import local_day_bounds, parse_day_key
from core.graph_client import get_graph_client
from models.activity import CalendarEvent, ProviderKind
from services.providers import ProviderError


def parse_graph_datetime(value) -> datetime | None:
    """
    Parse a Graph DateTimeTimeZone into an aware datetime.

    Graph returns e.g. "2025-11-03T14:00:00.0000000" with a separate zone
    name, "UTC" unless a Prefer: outlook.timezone header was sent.
    """
    if value is None or not value.date_time:
        return None
    # Graph sends 7 fractional digits
    parsed = datetime.fromisoformat(value.date_time.replace("Z", "").split(".")[0])
    zone_name = value.time_zone or "UTC"
    try:
        zone = timezone.utc if zone_name.upper() == "UTC" else ZoneInfo(zone_name)
    except ZoneInfoNotFoundError:
        # Windows zone names ("Pacific Standard Time") are not IANA keys
        zone = timezone.utc
    return parsed.replace(tzinfo=zone)


def parse_event(event) -> CalendarEvent | None:
    """Parse a Graph event into our format; all-day events return None."""
    if event.is_all_day:
        return None
    start = parse_graph_datetime(event.start)
    end = parse_graph_datetime(event.end)
    if start is None or end is None:
        return None
    return CalendarEvent(
        title=event.subject or "Untitled Event",
        start=start,
        end=end,
        attendees=len(event.attendees or []),
    )


class OutlookCalendarProvider:
    """Reads calendarView of one mailbox with app-only Graph credentials."""

    kind = ProviderKind.OUTLOOK_CALENDAR

    def __init__(self, user_id: str = OUTLOOK_USER_ID, graph=None):
        self.user_id = user_id
        self._graph = graph

    async def fetch_events(self, day_key: str) -> list[CalendarEvent]:
        """
        Fetch timed events of the local day.

        Handles pagination through odata_next_link.
        """
        start, end = local_day_bounds(parse_day_key(day_key))
        graph = self._graph or get_graph_client()
        calendar_view = graph.users.by_user_id(self.user_id).calendar.calendar_view

        query_params = CalendarViewRequestBuilder.CalendarViewRequestBuilderGetQueryParameters(
            start_date_time=start.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            end_date_time=end.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            select=["subject", "start", "end", "attendees", "isAllDay"],
            orderby=["start/dateTime"],
            top=100,
        )
        config = CalendarViewRequestBuilder.CalendarViewRequestBuilderGetRequestConfiguration(
            query_parameters=query_params
        )

        events = []
        try:
            response = await calendar_view.get(request_configuration=config)
            while response is not None:
                for raw in response.value or []:
                    parsed = parse_event(raw)
                    if parsed is not None:
                        events.append(parsed)
                if not response.odata_next_link:
                    break
                response = await calendar_view.with_url(response.odata_next_link).get()
        except ODataError as e:
            code = getattr(getattr(e, "error", None), "code", None) or e.response_status_code
            raise ProviderError(self.kind, f"Graph error {code}") from e

        return events


async def list_user_calendars(user_id: str = OUTLOOK_USER_ID) -> list[dict]:
    """Calendars of a mailbox, for picking the one to read."""
    graph = get_graph_client()
    response = await graph.users.by_user_id(user_id).calendars.get()
    calendars = response.value if response.value else []
    return [
        {
            "calendar_id": calendar.id,
            "calendar_name": calendar.name,
            "is_default": bool(calendar.is_default_calendar),
            "owner": calendar.owner.address if calendar.owner else None,
        }
        for calendar in calendars
    ]
