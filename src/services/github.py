"""
GitHub activity adapter.

Each raw user event is decoded once into a typed variant; only the variants
know how they contribute to an ActivityPayload.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta

import httpx

from core.config import GITHUB_API_URL, GITHUB_TOKEN, PROVIDER_TIMEOUT_SECONDS
from core.dates import format_day_key, parse_day_key, to_local_day_key
from models.activity import (
    ActivityPayload,
    Commit,
    IssueAction,
    IssueItem,
    ProviderKind,
    ReviewAction,
    ReviewItem,
)
from services.providers import ProviderError

log = logging.getLogger(__name__)

PER_PAGE = 100
MAX_EVENT_PAGES = 3  # the events API stops at 300 events


def _first_line(message: str) -> str:
    return message.strip().splitlines()[0] if message and message.strip() else "Commit"


# =============================================================================
# EVENT VARIANTS
# =============================================================================


@dataclass
class PushEvent:
    repo: str
    branch: str
    messages: list[str]

    @classmethod
    def from_json(cls, repo: str, payload: dict) -> "PushEvent":
        ref = payload.get("ref") or ""
        commits = payload.get("commits") or []
        return cls(
            repo=repo,
            branch=ref.replace("refs/heads/", "") or "main",
            messages=[_first_line(c.get("message", "")) for c in commits],
        )

    def apply(self, activity: ActivityPayload) -> None:
        for message in self.messages:
            activity.commits.append(Commit(message=message, project=self.repo, branch=self.branch))


@dataclass
class PullRequestEvent:
    repo: str
    action: str
    title: str
    number: int | None
    merged: bool

    @classmethod
    def from_json(cls, repo: str, payload: dict) -> "PullRequestEvent":
        pr = payload.get("pull_request") or {}
        return cls(
            repo=repo,
            action=payload.get("action") or "",
            title=pr.get("title") or "PR",
            number=pr.get("number") or payload.get("number"),
            merged=bool(pr.get("merged")),
        )

    def apply(self, activity: ActivityPayload) -> None:
        if self.action in ("opened", "reopened"):
            action = ReviewAction.CREATED
        elif self.action == "closed":
            action = ReviewAction.MERGED if self.merged else ReviewAction.CLOSED
        else:
            return
        activity.reviews.append(ReviewItem(action, self.title, self.repo, self.number))


@dataclass
class PullRequestReviewEvent:
    repo: str
    title: str
    number: int | None
    state: str

    @classmethod
    def from_json(cls, repo: str, payload: dict) -> "PullRequestReviewEvent":
        pr = payload.get("pull_request") or {}
        review = payload.get("review") or {}
        return cls(
            repo=repo,
            title=pr.get("title") or "PR",
            number=pr.get("number"),
            state=(review.get("state") or "").lower(),
        )

    def apply(self, activity: ActivityPayload) -> None:
        action = {
            "approved": ReviewAction.APPROVED,
            "commented": ReviewAction.COMMENTED,
        }.get(self.state, ReviewAction.REVIEWED)
        activity.reviews.append(ReviewItem(action, self.title, self.repo, self.number))


@dataclass
class PullRequestReviewCommentEvent:
    repo: str
    title: str
    number: int | None

    @classmethod
    def from_json(cls, repo: str, payload: dict) -> "PullRequestReviewCommentEvent":
        pr = payload.get("pull_request") or {}
        return cls(repo=repo, title=pr.get("title") or "PR", number=pr.get("number"))

    def apply(self, activity: ActivityPayload) -> None:
        activity.reviews.append(ReviewItem(ReviewAction.COMMENTED, self.title, self.repo, self.number))


@dataclass
class IssuesEvent:
    repo: str
    action: str
    title: str
    number: int | None

    @classmethod
    def from_json(cls, repo: str, payload: dict) -> "IssuesEvent":
        issue = payload.get("issue") or {}
        return cls(
            repo=repo,
            action=payload.get("action") or "",
            title=issue.get("title") or "Issue",
            number=issue.get("number"),
        )

    def apply(self, activity: ActivityPayload) -> None:
        action = {
            "opened": IssueAction.OPENED,
            "closed": IssueAction.CLOSED,
            "assigned": IssueAction.ASSIGNED,
            "reopened": IssueAction.STATUS_CHANGED,
        }.get(self.action)
        if action is None:
            return
        details = self.action if action == IssueAction.STATUS_CHANGED else None
        activity.issues.append(IssueItem(action, self.title, self.repo, self.number, details))


@dataclass
class IssueCommentEvent:
    repo: str
    title: str
    number: int | None
    is_pull_request: bool

    @classmethod
    def from_json(cls, repo: str, payload: dict) -> "IssueCommentEvent":
        issue = payload.get("issue") or {}
        return cls(
            repo=repo,
            title=issue.get("title") or "Issue",
            number=issue.get("number"),
            is_pull_request=bool(issue.get("pull_request")),
        )

    def apply(self, activity: ActivityPayload) -> None:
        if self.is_pull_request:
            activity.reviews.append(ReviewItem(ReviewAction.COMMENTED, self.title, self.repo, self.number))
        else:
            activity.issues.append(IssueItem(IssueAction.COMMENTED, self.title, self.repo, self.number))


GitHubEvent = (
    PushEvent
    | PullRequestEvent
    | PullRequestReviewEvent
    | PullRequestReviewCommentEvent
    | IssuesEvent
    | IssueCommentEvent
)

EVENT_TYPES = {
    "PushEvent": PushEvent,
    "PullRequestEvent": PullRequestEvent,
    "PullRequestReviewEvent": PullRequestReviewEvent,
    "PullRequestReviewCommentEvent": PullRequestReviewCommentEvent,
    "IssuesEvent": IssuesEvent,
    "IssueCommentEvent": IssueCommentEvent,
}


def decode_event(raw: dict) -> GitHubEvent | None:
    """Decode a raw /events entry; unsupported event types return None."""
    event_type = EVENT_TYPES.get(raw.get("type"))
    if event_type is None:
        return None
    repo = (raw.get("repo") or {}).get("name") or "Unknown"
    return event_type.from_json(repo, raw.get("payload") or {})


# =============================================================================
# PROVIDER
# =============================================================================


class GitHubProvider:
    """GitHub REST adapter using a personal access token."""

    kind = ProviderKind.GITHUB

    def __init__(
        self,
        token: str = GITHUB_TOKEN,
        base_url: str = GITHUB_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self.base_url = base_url
        self._transport = transport
        self._username: str | None = None
        self._user_lock = asyncio.Lock()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
            },
            timeout=PROVIDER_TIMEOUT_SECONDS,
            transport=self._transport,
        )

    async def fetch_activity(self, day_key: str) -> ActivityPayload:
        day = parse_day_key(day_key)
        # Search qualifiers are UTC dates; widen by a day each side and filter by local day
        window = f"{format_day_key(day - timedelta(days=1))}..{format_day_key(day + timedelta(days=1))}"
        activity = ActivityPayload()

        try:
            async with self._client() as client:
                username = await self._current_username(client)

                events, created, reviewed = await asyncio.gather(
                    self._day_events(client, username, day_key),
                    self._search_prs(
                        client, f"author:{username} is:pr created:{window}", "created_at", day_key
                    ),
                    self._search_prs(
                        client, f"reviewed-by:{username} is:pr updated:{window}", "updated_at", day_key
                    ),
                )
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 401:
                raise ProviderError(self.kind, "authentication expired, re-authenticate") from e
            raise ProviderError(self.kind, f"HTTP {e.response.status_code} from {e.request.url}") from e
        except httpx.RequestError as e:
            raise ProviderError(self.kind, f"request failed: {e}") from e

        for event in events:
            event.apply(activity)

        seen = {(r.title, r.project) for r in activity.reviews}
        for action, items in ((ReviewAction.CREATED, created), (ReviewAction.REVIEWED, reviewed)):
            for title, project, number in items:
                if (title, project) not in seen:
                    activity.reviews.append(ReviewItem(action, title, project, number))
                    seen.add((title, project))

        return activity

    async def _current_username(self, client: httpx.AsyncClient) -> str:
        """Look the user up once; concurrent day fetches wait on the first lookup."""
        async with self._user_lock:
            if self._username is None:
                response = await client.get("/user")
                response.raise_for_status()
                self._username = response.json()["login"]
        return self._username

    async def _day_events(
        self, client: httpx.AsyncClient, username: str, day_key: str
    ) -> list[GitHubEvent]:
        """User events on the local day; the feed is newest first."""
        events: list[GitHubEvent] = []
        for page in range(1, MAX_EVENT_PAGES + 1):
            response = await client.get(
                f"/users/{username}/events", params={"per_page": PER_PAGE, "page": page}
            )
            response.raise_for_status()
            raw_events = response.json()

            reached_older_days = False
            for raw in raw_events:
                if not raw.get("created_at"):
                    continue
                event_day = to_local_day_key(raw["created_at"])
                if event_day < day_key:
                    reached_older_days = True
                    continue
                if event_day != day_key:
                    continue
                event = decode_event(raw)
                if event is not None:
                    events.append(event)

            if reached_older_days or len(raw_events) < PER_PAGE:
                break
        return events

    async def _search_prs(
        self, client: httpx.AsyncClient, query: str, timestamp_field: str, day_key: str
    ) -> list[tuple[str, str, int | None]]:
        """PRs matching query whose timestamp_field falls on the local day."""
        response = await client.get("/search/issues", params={"q": query, "per_page": PER_PAGE})
        response.raise_for_status()
        results = []
        for item in response.json().get("items", []):
            if not item.get("pull_request"):
                continue
            timestamp = item.get(timestamp_field)
            if not timestamp or to_local_day_key(timestamp) != day_key:
                continue
            repo = "/".join((item.get("repository_url") or "").split("/")[-2:]) or "Unknown"
            results.append((item.get("title") or "PR", repo, item.get("number")))
        return results
