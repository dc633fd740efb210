"""Strava connection and sync endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import RedirectResponse

from gpxgrid.activities.sports import get_sport_catalog
from gpxgrid.dependencies import AppSettings, CurrentUser, SyncEngine
from gpxgrid.models.activities import (
    StravaExchangeRequest,
    StravaStatusRead,
    StravaStatusResponse,
    StravaSyncResponse,
    SyncSummaryRead,
)
from gpxgrid.routers.activities import to_activity_list

router = APIRouter(prefix="/strava", tags=["strava"])
logger = logging.getLogger("gpxgrid.routers.strava")


@router.get("/authorize")
async def authorize(user: CurrentUser, engine: SyncEngine) -> Any:
    if not engine.configured:
        raise HTTPException(status_code=503, detail="Strava is not configured on this server.")
    url = await engine.build_authorize_url(user.user_id)
    return RedirectResponse(url, status_code=307)


@router.post("/exchange")
async def exchange(user: CurrentUser, engine: SyncEngine, body: StravaExchangeRequest) -> Any:
    code = (body.code or "").strip()
    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    state = (body.state or "").strip() or None
    await engine.exchange_code(user.user_id, code, state)
    return {"success": True}


@router.get("/status", response_model=StravaStatusResponse)
async def status(user: CurrentUser, engine: SyncEngine, settings: AppSettings) -> Any:
    current = await engine.status(user.user_id)
    return StravaStatusResponse(
        status=StravaStatusRead.model_validate(current),
        scope=settings.strava_scope,
    )


@router.post("/sync", response_model=StravaSyncResponse)
async def sync(user: CurrentUser, engine: SyncEngine) -> Any:
    result = await engine.sync(user.user_id)
    return StravaSyncResponse(
        activities=to_activity_list(result.imported, get_sport_catalog()),
        summary=SyncSummaryRead.model_validate(result.summary),
    )
