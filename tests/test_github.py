"""Tests for the GitHub adapter: event decoding and the mocked REST API."""

import asyncio

import httpx
import pytest

from models.activity import ActivityPayload, IssueAction, ReviewAction
from services.github import (
    GitHubProvider,
    IssueCommentEvent,
    PullRequestEvent,
    PushEvent,
    decode_event,
)
from services.providers import ProviderError


def raw_event(event_type, created_at, payload, repo="octo/web"):
    return {"type": event_type, "created_at": created_at, "repo": {"name": repo}, "payload": payload}


def test_decode_push_event_takes_first_line():
    event = decode_event(
        raw_event(
            "PushEvent",
            "2025-11-03T10:00:00Z",
            {"ref": "refs/heads/feature", "commits": [{"message": "Fix bug\n\nLong body"}]},
        )
    )

    assert isinstance(event, PushEvent)
    assert event.branch == "feature"
    assert event.messages == ["Fix bug"]


def test_decode_unknown_type_returns_none():
    assert decode_event(raw_event("WatchEvent", "2025-11-03T10:00:00Z", {})) is None


@pytest.mark.parametrize(
    "action, merged, expected",
    [("opened", False, ReviewAction.CREATED), ("closed", True, ReviewAction.MERGED), ("closed", False, ReviewAction.CLOSED)],
)
def test_pull_request_actions(action, merged, expected):
    activity = ActivityPayload()
    PullRequestEvent("octo/web", action, "Add cache", 3, merged).apply(activity)

    assert [r.action for r in activity.reviews] == [expected]


def test_issue_comment_on_pull_request_is_a_review():
    activity = ActivityPayload()
    IssueCommentEvent("octo/web", "Add cache", 3, is_pull_request=True).apply(activity)
    IssueCommentEvent("octo/web", "Crash", 4, is_pull_request=False).apply(activity)

    assert [r.action for r in activity.reviews] == [ReviewAction.COMMENTED]
    assert [i.action for i in activity.issues] == [IssueAction.COMMENTED]


EVENTS = [
    raw_event("PushEvent", "2025-11-04T09:00:00Z", {"ref": "refs/heads/main", "commits": [{"message": "Later"}]}),
    raw_event("PushEvent", "2025-11-03T15:00:00Z", {"ref": "refs/heads/main", "commits": [{"message": "Ship it"}]}),
    raw_event("PullRequestEvent", "2025-11-03T14:00:00Z", {"action": "opened", "pull_request": {"title": "Add cache", "number": 3}}),
    raw_event("IssuesEvent", "2025-11-03T13:00:00Z", {"action": "opened", "issue": {"title": "Crash", "number": 4}}),
    raw_event("PushEvent", "2025-11-02T15:00:00Z", {"ref": "refs/heads/main", "commits": [{"message": "Earlier"}]}),
]

SEARCH = {
    "created": [
        {
            "title": "Add cache",
            "number": 3,
            "created_at": "2025-11-03T14:00:00Z",
            "repository_url": "https://api.github.test/repos/octo/web",
            "pull_request": {},
        },
        # Late evening in New York, already the next day in UTC
        {
            "title": "Hotfix",
            "number": 5,
            "created_at": "2025-11-04T02:00:00Z",
            "repository_url": "https://api.github.test/repos/octo/web",
            "pull_request": {},
        },
    ],
    "reviewed": [
        {
            "title": "Refactor",
            "number": 8,
            "updated_at": "2025-11-03T16:00:00Z",
            "repository_url": "https://api.github.test/repos/octo/api",
            "pull_request": {},
        },
        {
            "title": "Not a PR",
            "number": 9,
            "updated_at": "2025-11-03T16:00:00Z",
            "repository_url": "https://api.github.test/repos/octo/api",
        },
    ],
}


def make_transport(calls, status=200, queries=None):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if status != 200:
            return httpx.Response(status, json={"message": "Bad credentials"})
        if request.url.path == "/user":
            return httpx.Response(200, json={"login": "octocat"})
        if request.url.path == "/users/octocat/events":
            return httpx.Response(200, json=EVENTS)
        if request.url.path == "/search/issues":
            query = request.url.params["q"]
            if queries is not None:
                queries.append(query)
            key = "created" if query.startswith("author:octocat") else "reviewed"
            return httpx.Response(200, json={"items": SEARCH[key]})
        return httpx.Response(404)

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_fetch_activity_combines_events_and_search():
    calls = []
    provider = GitHubProvider(token="t", base_url="https://api.github.test", transport=make_transport(calls))

    activity = await provider.fetch_activity("2025-11-03")

    assert [c.message for c in activity.commits] == ["Ship it"]
    # "Add cache" from the event feed is not repeated by the search result
    # "Hotfix" was created on 11-04 in UTC, so it belongs to the next day here
    assert [(r.action, r.title, r.project) for r in activity.reviews] == [
        (ReviewAction.CREATED, "Add cache", "octo/web"),
        (ReviewAction.REVIEWED, "Refactor", "octo/api"),
    ]
    assert [(i.action, i.title) for i in activity.issues] == [(IssueAction.OPENED, "Crash")]
    # Older events stop paging
    assert calls.count("/users/octocat/events") == 1


@pytest.mark.asyncio
async def test_unauthorized_becomes_provider_error():
    provider = GitHubProvider(token="bad", base_url="https://api.github.test", transport=make_transport([], 401))

    with pytest.raises(ProviderError, match="authentication expired"):
        await provider.fetch_activity("2025-11-03")


@pytest.mark.asyncio
async def test_search_results_are_bucketed_by_local_day(monkeypatch):
    monkeypatch.setattr("core.dates.TIMEZONE_NAME", "America/New_York")
    calls, queries = [], []
    provider = GitHubProvider(
        token="t", base_url="https://api.github.test", transport=make_transport(calls, queries=queries)
    )

    activity = await provider.fetch_activity("2025-11-03")

    assert [(r.action, r.title) for r in activity.reviews] == [
        (ReviewAction.CREATED, "Add cache"),
        (ReviewAction.CREATED, "Hotfix"),
        (ReviewAction.REVIEWED, "Refactor"),
    ]
    assert "author:octocat is:pr created:2025-11-02..2025-11-04" in queries


@pytest.mark.asyncio
async def test_concurrent_days_look_up_user_once():
    calls = []
    provider = GitHubProvider(token="t", base_url="https://api.github.test", transport=make_transport(calls))

    await asyncio.gather(
        provider.fetch_activity("2025-11-03"),
        provider.fetch_activity("2025-11-04"),
        provider.fetch_activity("2025-11-05"),
    )

    assert calls.count("/user") == 1
