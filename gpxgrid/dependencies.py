"""Shared FastAPI dependencies and the service graph they hand out."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

import httpx
from fastapi import Depends, HTTPException, Request

from gpxgrid.activities.store import ActivityRecordStore
from gpxgrid.config import Settings, get_settings
from gpxgrid.storage.base import StorageDriver
from gpxgrid.storage.factory import build_storage_driver
from gpxgrid.strava.client import StravaClient
from gpxgrid.strava.engine import StravaSyncEngine
from gpxgrid.strava.state import StravaStateRepository


@dataclass(frozen=True)
class AuthContext:
    """Authenticated user context set by the auth middleware."""

    user_id: str  # Clerk user ID (e.g. "user_2x..."), or the dev user id
    email: str | None = None
    session_id: str | None = None


@dataclass
class Services:
    """Long-lived objects built once at startup."""

    storage: StorageDriver
    activity_store: ActivityRecordStore
    strava_engine: StravaSyncEngine


def build_services(
    settings: Settings, http_client: httpx.AsyncClient | None = None
) -> Services:
    """Wire storage, the activity store and the Strava engine together.

    The Strava client is only built when its app credentials are present;
    otherwise the engine runs unconfigured and reports so.
    """
    storage = build_storage_driver(settings, http_client=http_client)
    store = ActivityRecordStore(storage)
    client = (
        StravaClient.from_settings(settings, http_client=http_client)
        if settings.strava_configured
        else None
    )
    engine = StravaSyncEngine(
        client=client,
        states=StravaStateRepository(storage),
        store=store,
    )
    return Services(storage=storage, activity_store=store, strava_engine=engine)


async def get_current_user(request: Request) -> AuthContext:
    """Extract the authenticated user from the request state.

    The auth middleware sets ``request.state.auth`` before routes run.
    """
    auth: AuthContext | None = getattr(request.state, "auth", None)
    if auth is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return auth


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_activity_store(request: Request) -> ActivityRecordStore:
    return get_services(request).activity_store


def get_strava_engine(request: Request) -> StravaSyncEngine:
    return get_services(request).strava_engine


# Annotated shortcuts for route signatures
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]
AppSettings = Annotated[Settings, Depends(get_settings)]
AppServices = Annotated[Services, Depends(get_services)]
ActivityStore = Annotated[ActivityRecordStore, Depends(get_activity_store)]
SyncEngine = Annotated[StravaSyncEngine, Depends(get_strava_engine)]
