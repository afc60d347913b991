"""
GitLab activity adapter.

Reads the authenticated user's event feed and translates it into an
ActivityPayload for one local day.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta

import httpx

from core.config import GITLAB_TOKEN, GITLAB_URL, PROVIDER_TIMEOUT_SECONDS
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


@dataclass
class GitLabEvent:
    """One entry of the /events feed, decoded from the raw JSON."""

    action_name: str
    created_at: str
    author_id: int | None
    project_id: int | None
    target_type: str | None
    target_title: str | None
    target_iid: int | None
    noteable_type: str | None = None
    noteable_iid: int | None = None
    push_ref: str | None = None
    push_commit_title: str | None = None

    @classmethod
    def from_json(cls, raw: dict) -> "GitLabEvent":
        note = raw.get("note") if isinstance(raw.get("note"), dict) else {}
        push_data = raw.get("push_data") if isinstance(raw.get("push_data"), dict) else {}
        return cls(
            action_name=raw.get("action_name") or "",
            created_at=raw.get("created_at") or "",
            author_id=raw.get("author_id"),
            project_id=raw.get("project_id"),
            target_type=raw.get("target_type"),
            target_title=raw.get("target_title"),
            target_iid=raw.get("target_iid"),
            noteable_type=note.get("noteable_type"),
            noteable_iid=note.get("noteable_iid"),
            push_ref=push_data.get("ref"),
            push_commit_title=push_data.get("commit_title"),
        )


def apply_event(event: GitLabEvent, project: str, payload: ActivityPayload) -> None:
    """Translate one event into commits / review items / issue items."""
    action = event.action_name
    target = event.target_type
    title = event.target_title

    if action in ("pushed to", "pushed new"):
        if event.push_commit_title or event.push_ref:
            payload.commits.append(
                Commit(
                    message=event.push_commit_title or "Commit",
                    project=project,
                    branch=event.push_ref or "unknown",
                )
            )

    elif action == "opened":
        if target == "MergeRequest":
            payload.reviews.append(ReviewItem(ReviewAction.CREATED, title or "MR", project, event.target_iid))
        elif target == "Issue":
            payload.issues.append(IssueItem(IssueAction.OPENED, title or "Issue", project, event.target_iid))

    elif action == "commented on":
        # target_type is "Note"/"DiffNote" for comments; the noteable says what was commented on
        kind = event.noteable_type or target
        iid = event.noteable_iid or event.target_iid
        if kind == "MergeRequest":
            payload.reviews.append(ReviewItem(ReviewAction.COMMENTED, title or "MR", project, iid))
        elif kind == "Issue":
            payload.issues.append(IssueItem(IssueAction.COMMENTED, title or "Issue", project, iid))

    elif action in ("accepted", "approved"):
        if target == "MergeRequest":
            payload.reviews.append(ReviewItem(ReviewAction.APPROVED, title or "MR", project, event.target_iid))

    elif action == "closed":
        if target == "MergeRequest":
            payload.reviews.append(ReviewItem(ReviewAction.CLOSED, title or "MR", project, event.target_iid))
        elif target == "Issue":
            payload.issues.append(IssueItem(IssueAction.CLOSED, title or "Issue", project, event.target_iid))

    elif action == "merged":
        if target == "MergeRequest":
            payload.reviews.append(ReviewItem(ReviewAction.MERGED, title or "MR", project, event.target_iid))


class GitLabProvider:
    """GitLab REST v4 adapter using a personal or OAuth access token."""

    kind = ProviderKind.GITLAB

    def __init__(
        self,
        token: str = GITLAB_TOKEN,
        base_url: str = GITLAB_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self.base_url = base_url
        self._transport = transport
        self._user_id: int | None = None
        self._user_lock = asyncio.Lock()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/api/v4",
            headers={"Authorization": f"Bearer {self.token}"},
            timeout=PROVIDER_TIMEOUT_SECONDS,
            transport=self._transport,
        )

    async def fetch_activity(self, day_key: str) -> ActivityPayload:
        day = parse_day_key(day_key)
        payload = ActivityPayload()
        project_names: dict[int, str] = {}

        try:
            async with self._client() as client:
                user_id = await self._current_user_id(client)

                # after/before are exclusive and UTC-dated; widen and filter by local day below
                params = {
                    "after": format_day_key(day - timedelta(days=2)),
                    "before": format_day_key(day + timedelta(days=2)),
                    "per_page": PER_PAGE,
                }
                page = 1
                while True:
                    response = await client.get("/events", params={**params, "page": page})
                    response.raise_for_status()
                    raw_events = response.json()

                    for raw in raw_events:
                        event = GitLabEvent.from_json(raw)
                        if event.author_id != user_id:
                            continue
                        if not event.created_at or to_local_day_key(event.created_at) != day_key:
                            continue
                        project = await self._project_name(client, event.project_id, project_names)
                        apply_event(event, project, payload)

                    if len(raw_events) < PER_PAGE:
                        break
                    page += 1

        except httpx.HTTPStatusError as e:
            if e.response.status_code == 401:
                raise ProviderError(self.kind, "authentication expired, re-authenticate") from e
            raise ProviderError(self.kind, f"HTTP {e.response.status_code} from {e.request.url}") from e
        except httpx.RequestError as e:
            raise ProviderError(self.kind, f"request failed: {e}") from e

        return payload

    async def _current_user_id(self, client: httpx.AsyncClient) -> int:
        """Look the user up once; concurrent day fetches wait on the first lookup."""
        async with self._user_lock:
            if self._user_id is None:
                response = await client.get("/user")
                response.raise_for_status()
                self._user_id = response.json()["id"]
        return self._user_id

    async def _project_name(
        self, client: httpx.AsyncClient, project_id: int | None, memo: dict[int, str]
    ) -> str:
        """Resolve a project id to its name, memoized for the current fetch only."""
        if not isinstance(project_id, int):
            return "Unknown"
        if project_id not in memo:
            try:
                response = await client.get(f"/projects/{project_id}")
                response.raise_for_status()
                memo[project_id] = response.json().get("name") or f"Project {project_id}"
            except httpx.HTTPError as e:
                log.debug(f"Could not resolve GitLab project {project_id}: {e}")
                memo[project_id] = f"Project {project_id}"
        return memo[project_id]
