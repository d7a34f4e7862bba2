import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure tests run with testing env configuration before settings are cached
os.environ["APP_ENV"] = "testing"

from oddsnap.api.deps import get_odds_client  # noqa: E402
from oddsnap.core.config import get_settings  # noqa: E402
from oddsnap.main import app  # noqa: E402
from oddsnap.services.odds_api import OddsApiClient  # noqa: E402
from oddsnap.services.response_cache import ResponseCache  # noqa: E402

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
USAGE_HEADERS = {"x-requests-remaining": "499", "x-requests-used": "1", "x-requests-last": "1"}


def sport_row(key: str, title: str, *, active: bool = True, group: str = "Basketball") -> dict:
    return {
        "key": key,
        "group": group,
        "title": title,
        "description": f"{title} games",
        "active": active,
        "has_outrights": False,
    }


def event_row(
    event_id: str,
    sport_key: str,
    hours_from_now: float,
    home_team: str | None = "Los Angeles Lakers",
    away_team: str | None = "Boston Celtics",
) -> dict:
    commence = NOW + timedelta(hours=hours_from_now)
    return {
        "id": event_id,
        "sport_key": sport_key,
        "commence_time": commence.isoformat().replace("+00:00", "Z"),
        "home_team": home_team,
        "away_team": away_team,
    }


class FakeOddsApi:
    """Serves canned JSON per upstream path and records every request it sees."""

    def __init__(self, routes: dict[str, object] | None = None) -> None:
        self.routes: dict[str, object] = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/v4")
        body = self.routes.get(path)
        if body is None:
            return httpx.Response(404, json={"message": f"Unknown route {path}"})
        if isinstance(body, httpx.Response):
            return body
        return httpx.Response(200, json=body, headers=USAGE_HEADERS)

    def calls(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path.removeprefix("/v4") == path]


@pytest.fixture(autouse=True)
def configured_settings(monkeypatch, tmp_path):
    settings = get_settings()
    monkeypatch.setattr(settings, "odds_api_key", "test-key")
    monkeypatch.setattr(settings, "snapshot_log_dir", str(tmp_path))
    monkeypatch.setattr(settings, "snapshot_concurrency", 1)
    return settings


@pytest.fixture
def fake_api() -> FakeOddsApi:
    return FakeOddsApi()


@pytest_asyncio.fixture
async def http_client(fake_api: FakeOddsApi) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler)) as client:
        yield client


@pytest.fixture
def odds_client(http_client: httpx.AsyncClient) -> OddsApiClient:
    return OddsApiClient(cache=ResponseCache(), http_client=http_client, now=lambda: NOW)


@pytest_asyncio.fixture
async def async_client(odds_client: OddsApiClient) -> AsyncGenerator[AsyncClient, None]:
    """
    Fixture for an async HTTPX test client hooked to the FastAPI app.
    The app's Odds API client is swapped for one backed by the fake upstream.
    """
    app.dependency_overrides[get_odds_client] = lambda: odds_client
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.pop(get_odds_client, None)
