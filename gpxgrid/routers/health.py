"""Health check endpoint — public, no auth required."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from gpxgrid.dependencies import AppServices, AppSettings

router = APIRouter(tags=["system"])


@router.get("/health")
async def health_check(services: AppServices, settings: AppSettings) -> dict:
    """Liveness probe. Returns 200 if the API process is up."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "storage": services.storage.NAME,
        "strava": "configured" if services.strava_engine.configured else "unconfigured",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
