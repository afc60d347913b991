"""Tests for the GitLab adapter against a mocked REST API."""

import asyncio

import httpx
import pytest

from models.activity import ActivityPayload, IssueAction, ReviewAction
from services.gitlab import GitLabEvent, GitLabProvider, apply_event
from services.providers import ProviderError

EVENTS = [
    {
        "action_name": "pushed to",
        "created_at": "2025-11-03T10:00:00.000Z",
        "author_id": 7,
        "project_id": 1,
        "push_data": {"ref": "feature/login", "commit_title": "Add login form"},
    },
    {
        "action_name": "opened",
        "created_at": "2025-11-03T11:00:00.000Z",
        "author_id": 7,
        "project_id": 1,
        "target_type": "MergeRequest",
        "target_title": "Login form",
        "target_iid": 4,
    },
    {
        "action_name": "commented on",
        "created_at": "2025-11-03T12:00:00.000Z",
        "author_id": 7,
        "project_id": 2,
        "target_type": "DiffNote",
        "target_title": "Broken build",
        "note": {"noteable_type": "Issue", "noteable_iid": 9},
    },
    # Someone else
    {
        "action_name": "merged",
        "created_at": "2025-11-03T13:00:00.000Z",
        "author_id": 8,
        "project_id": 1,
        "target_type": "MergeRequest",
        "target_title": "Other MR",
    },
    # Next day
    {
        "action_name": "pushed to",
        "created_at": "2025-11-04T01:00:00.000Z",
        "author_id": 7,
        "project_id": 1,
        "push_data": {"ref": "main", "commit_title": "Tomorrow"},
    },
]


def make_transport(calls, status=200, windows=None):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if status != 200:
            return httpx.Response(status, json={"message": "401 Unauthorized"})
        if request.url.path == "/api/v4/user":
            return httpx.Response(200, json={"id": 7})
        if request.url.path == "/api/v4/events":
            if windows is not None:
                windows.append((request.url.params["after"], request.url.params["before"]))
            return httpx.Response(200, json=EVENTS)
        if request.url.path.startswith("/api/v4/projects/"):
            project_id = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(200, json={"name": {"1": "web-app", "2": "infra"}[project_id]})
        return httpx.Response(404)

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_fetch_activity_maps_events():
    calls, windows = [], []
    provider = GitLabProvider(
        token="t", base_url="https://gitlab.test", transport=make_transport(calls, windows=windows)
    )

    payload = await provider.fetch_activity("2025-11-03")

    assert windows == [("2025-11-01", "2025-11-05")]

    assert [(c.message, c.project, c.branch) for c in payload.commits] == [
        ("Add login form", "web-app", "feature/login")
    ]
    assert [(r.action, r.title, r.id) for r in payload.reviews] == [(ReviewAction.CREATED, "Login form", 4)]
    assert [(i.action, i.project, i.id) for i in payload.issues] == [(IssueAction.COMMENTED, "infra", 9)]
    # Each project resolved once per fetch
    assert calls.count("/api/v4/projects/1") == 1


@pytest.mark.asyncio
async def test_user_id_is_looked_up_once():
    calls = []
    provider = GitLabProvider(token="t", base_url="https://gitlab.test", transport=make_transport(calls))

    await provider.fetch_activity("2025-11-03")
    await provider.fetch_activity("2025-11-03")

    assert calls.count("/api/v4/user") == 1


@pytest.mark.asyncio
async def test_unauthorized_becomes_provider_error():
    provider = GitLabProvider(token="bad", base_url="https://gitlab.test", transport=make_transport([], 401))

    with pytest.raises(ProviderError, match="authentication expired"):
        await provider.fetch_activity("2025-11-03")


def test_apply_event_ignores_unknown_actions():
    payload = ActivityPayload()
    event = GitLabEvent.from_json({"action_name": "joined", "created_at": "2025-11-03T10:00:00Z"})

    apply_event(event, "web-app", payload)

    assert payload.is_empty


@pytest.mark.asyncio
async def test_concurrent_days_look_up_user_once():
    calls = []
    provider = GitLabProvider(token="t", base_url="https://gitlab.test", transport=make_transport(calls))

    await asyncio.gather(
        provider.fetch_activity("2025-11-03"),
        provider.fetch_activity("2025-11-04"),
        provider.fetch_activity("2025-11-05"),
    )

    assert calls.count("/api/v4/user") == 1
