"""Tests for the REST API."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from api import dependencies
from api.main import app
from api.routes import activity as activity_routes
from api.routes import health as health_routes
from core.cache import ActivityCache
from core.dates import InputError
from fixtures.activity import make_day
from services.distributor import DistributionSummary
from services.timesheet import TimesheetResult

API_KEY = "test-key"
HEADERS = {"X-API-Key": API_KEY}


@pytest.fixture
def client(monkeypatch, tmp_path):
    monkeypatch.setattr(dependencies, "TIMESHEET_API_KEY", API_KEY)
    logged = []
    monkeypatch.setattr(activity_routes, "log_request", logged.append)
    cache = ActivityCache(tmp_path / "cache.json")
    app.dependency_overrides[dependencies.get_activity_cache] = lambda: cache
    test_client = TestClient(app)
    test_client.logged = logged
    test_client.cache = cache
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def fake_collect(monkeypatch):
    calls = []

    async def collect(days, cache, mode, force_refresh, provider_names):
        calls.append({"days": days, "mode": mode, "force_refresh": force_refresh, "providers": provider_names})
        result_days = [make_day(days[0]), make_day(days[-1], commits=2)]
        result_days[1].sources = {"gitlab": True}
        result_days[1].description = "Worked on things."
        return TimesheetResult(
            days=result_days,
            summary=DistributionSummary(1, 1, "Note: 1 day(s) had no recorded activity."),
        )

    monkeypatch.setattr(activity_routes, "collect_activity", collect)
    return calls


def test_missing_api_key(client):
    response = client.post("/v1/activity", json={"start_date": "2025-11-03"})

    assert response.status_code == 422


def test_wrong_api_key(client):
    response = client.post("/v1/activity", json={"start_date": "2025-11-03"}, headers={"X-API-Key": "nope"})

    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "UNAUTHORIZED"


def test_fetch_activity(client, fake_collect):
    response = client.post(
        "/v1/activity",
        json={"start_date": "2025-11-03", "end_date": "2025-11-05", "mode": "phased", "providers": ["gitlab"]},
        headers=HEADERS,
    )

    assert response.status_code == 200
    body = response.json()
    assert [d["date"] for d in body["days"]] == ["2025-11-03", "2025-11-05"]
    assert body["days"][1]["day_of_week"] == "Wednesday"
    assert len(body["days"][1]["activity"]["commits"]) == 2
    assert body["distribution"]["gap_days_count"] == 1
    assert fake_collect[0]["days"] == [date(2025, 11, 3), date(2025, 11, 4), date(2025, 11, 5)]
    assert fake_collect[0]["mode"] == "phased"

    (log,) = client.logged
    assert log.status_code == 200
    assert log.days_returned == 2
    assert log.cache_hits == 1
    assert log.providers == "gitlab"


def test_invalid_date_is_400(client, fake_collect):
    response = client.post("/v1/activity", json={"start_date": "11/03/2025"}, headers=HEADERS)

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "INVALID_REQUEST"
    assert "YYYY-MM-DD" in detail["details"][0]
    assert fake_collect == []
    assert client.logged[0].error_code == "INVALID_REQUEST"


def test_input_error_from_pipeline_is_400(client, monkeypatch):
    async def collect(*args, **kwargs):
        raise InputError("Provider(s) not configured: github")

    monkeypatch.setattr(activity_routes, "collect_activity", collect)

    response = client.post("/v1/activity", json={"start_date": "2025-11-03", "providers": ["github"]}, headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["detail"]["details"] == ["Provider(s) not configured: github"]


def test_unexpected_error_is_500(client, monkeypatch):
    async def collect(*args, **kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(activity_routes, "collect_activity", collect)

    response = client.post("/v1/activity", json={"start_date": "2025-11-03"}, headers=HEADERS)

    assert response.status_code == 500
    assert response.json()["detail"]["code"] == "INTERNAL_ERROR"
    assert client.logged[0].error_message == "disk on fire"


def test_export_returns_workbook(client, fake_collect):
    response = client.post(
        "/v1/activity/export", json={"start_date": "2025-11-03", "end_date": "2025-11-05"}, headers=HEADERS
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/vnd.openxmlformats")
    assert 'filename="activity_2025-11-03_2025-11-05.xlsx"' in response.headers["content-disposition"]
    assert response.content[:2] == b"PK"


def test_cache_stats_and_clear(client):
    response = client.get("/v1/cache/stats", headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["total_requests"] == 0

    response = client.post("/v1/cache/clear", json={"scope": "calendars"}, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["scope"] == "calendars"
    assert response.json()["entries"]["gitlab"] == 0


def test_cache_clear_unknown_scope(client):
    response = client.post("/v1/cache/clear", json={"scope": "svn"}, headers=HEADERS)

    assert response.status_code == 400


def test_health(client, monkeypatch, tmp_path):
    monkeypatch.setattr(health_routes, "CACHE_FILE", tmp_path / "cache.json")
    monkeypatch.setattr(health_routes, "is_configured", lambda kind: kind.value == "gitlab")

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["providers_configured"] == ["gitlab"]


def test_health_unhealthy_without_providers(client, monkeypatch, tmp_path):
    monkeypatch.setattr(health_routes, "CACHE_FILE", tmp_path / "cache.json")
    monkeypatch.setattr(health_routes, "is_configured", lambda kind: False)

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["error"] == "No providers are configured"
