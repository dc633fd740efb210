"""Shared fixtures and a fake Strava API for sync engine tests."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio

from gpxgrid.activities.store import ActivityRecordStore
from gpxgrid.storage.local import LocalStorageDriver
from gpxgrid.strava.client import StravaClient
from gpxgrid.strava.engine import StravaSyncEngine
from gpxgrid.strava.state import StravaStateRepository, SyncState

FIXTURES_DIR = Path(__file__).parent / "fixtures"

TEST_USER_ID = "user_test_123"
NOW = 1_714_550_400  # 2024-05-01T08:00:00Z
REDIRECT_URI = "http://localhost:3000/strava/callback"


def start_date(epoch_seconds: int) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def make_activity(
    strava_id: int,
    started: int,
    sport_type: str = "Run",
    polyline: str | None = "??_ibE_ibE",
    name: str = "Activity",
) -> dict[str, Any]:
    return {
        "id": strava_id,
        "name": name,
        "type": sport_type,
        "sport_type": sport_type,
        "start_date": start_date(started),
        "map": {"id": f"a{strava_id}", "summary_polyline": polyline},
    }


class FakeStrava:
    """In-memory Strava OAuth + activities API for httpx.MockTransport.

    Activities are filtered by ``after`` and paginated like the real API,
    unless ``ignore_after`` is set.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_forms: list[dict[str, str]] = []
        self.activities: list[dict[str, Any]] = []
        self.token_status = 200
        self.token_payload: dict[str, Any] = json.loads(
            (FIXTURES_DIR / "strava_token_exchange.json").read_text()
        )
        self.api_status = 200
        self.ignore_after = False

    @property
    def activity_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/api/v3/athlete/activities"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path == "/oauth/token":
            form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
            self.token_forms.append(form)
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"message": "Bad Request"})
            return httpx.Response(200, json=self.token_payload)

        if request.url.path == "/api/v3/athlete/activities":
            if self.api_status != 200:
                return httpx.Response(self.api_status, json={"message": "error"})
            after = int(request.url.params["after"])
            page = int(request.url.params["page"])
            per_page = int(request.url.params["per_page"])

            def started(activity: dict[str, Any]) -> float:
                return datetime.fromisoformat(
                    activity["start_date"].replace("Z", "+00:00")
                ).timestamp()

            matching = sorted(
                (a for a in self.activities if self.ignore_after or started(a) > after),
                key=started,
            )
            offset = (page - 1) * per_page
            return httpx.Response(200, json=matching[offset:offset + per_page])

        return httpx.Response(404)


@pytest.fixture
def fake_strava() -> FakeStrava:
    return FakeStrava()


@pytest.fixture
def strava_activities_raw() -> list[dict]:
    return json.loads((FIXTURES_DIR / "strava_activities.json").read_text())


@pytest.fixture
def strava_client(fake_strava: FakeStrava) -> StravaClient:
    return StravaClient(
        client_id="12345",
        client_secret="test_client_secret",
        redirect_uri=REDIRECT_URI,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_strava)),
    )


@pytest.fixture
def storage(tmp_path: Path) -> LocalStorageDriver:
    return LocalStorageDriver(tmp_path)


@pytest.fixture
def states(storage: LocalStorageDriver) -> StravaStateRepository:
    return StravaStateRepository(storage)


@pytest.fixture
def store(storage: LocalStorageDriver) -> ActivityRecordStore:
    return ActivityRecordStore(storage, clock_ms=lambda: NOW * 1000)


@pytest.fixture
def engine(
    strava_client: StravaClient, states: StravaStateRepository, store: ActivityRecordStore
) -> StravaSyncEngine:
    nonces = iter(f"nonce-{i}" for i in range(1, 100))
    return StravaSyncEngine(
        client=strava_client,
        states=states,
        store=store,
        clock=lambda: float(NOW),
        nonce_factory=lambda: next(nonces),
    )


@pytest_asyncio.fixture
async def connected_state(states: StravaStateRepository) -> SyncState:
    """A connected user whose token is valid for another five minutes."""
    state = SyncState(access_token="at-0", refresh_token="rt-0", expires_at=NOW + 300)
    await states.save(TEST_USER_ID, state)
    return state.model_copy(deep=True)
