"""App-level fixtures: a fully wired FastAPI app over local storage and a fake Strava."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from gpxgrid.activities.store import ActivityRecordStore
from gpxgrid.config import Settings
from gpxgrid.dependencies import Services
from gpxgrid.main import create_app
from gpxgrid.storage.local import LocalStorageDriver
from gpxgrid.strava.client import StravaClient
from gpxgrid.strava.engine import StravaSyncEngine
from gpxgrid.strava.state import StravaStateRepository
from gpxgrid.strava.tests.conftest import FIXTURES_DIR, FakeStrava

DEV_USER_ID = "dev-user"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        environment="development",
        storage_driver="local",
        storage_root=tmp_path,
        clerk_secret_key="",
        clerk_publishable_key="",
        dev_storage_user_id=DEV_USER_ID,
        strava_client_id="12345",
        strava_client_secret="test_client_secret",
        strava_redirect_uri="http://localhost:3000/strava/callback",
    )


@pytest.fixture
def fake_strava() -> FakeStrava:
    return FakeStrava()


@pytest.fixture
def strava_activities_raw() -> list[dict]:
    return json.loads((FIXTURES_DIR / "strava_activities.json").read_text())


def _services(settings: Settings, client: StravaClient | None) -> Services:
    storage = LocalStorageDriver(settings.storage_root)
    store = ActivityRecordStore(storage)
    engine = StravaSyncEngine(
        client=client,
        states=StravaStateRepository(storage),
        store=store,
    )
    return Services(storage=storage, activity_store=store, strava_engine=engine)


@pytest.fixture
def services(settings: Settings, fake_strava: FakeStrava) -> Services:
    client = StravaClient.from_settings(
        settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_strava))
    )
    return _services(settings, client)


@pytest.fixture
def api(settings: Settings, services: Services):
    with TestClient(create_app(settings, services)) as client:
        yield client


@pytest.fixture
def unconfigured_api(settings: Settings):
    with TestClient(create_app(settings, _services(settings, None))) as client:
        yield client
