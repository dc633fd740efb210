"""GPX Grid Challenge API — FastAPI application entry point.

Run locally:
    uvicorn gpxgrid.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gpxgrid.config import Settings, get_settings
from gpxgrid.dependencies import Services, build_services
from gpxgrid.errors import (
    AuthError,
    ConfigurationError,
    InvalidKeyError,
    NotConnectedError,
    NotFoundError,
    ParseError,
    StateMismatchError,
    TransportError,
)
from gpxgrid.middleware.clerk_auth import ClerkAuthMiddleware
from gpxgrid.routers import activities, health, strava

# ---------- Logging ----------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("gpxgrid")

# Domain error → HTTP status.  First match wins, so subclasses come first.
_ERROR_STATUS: list[tuple[type[Exception], int]] = [
    (NotConnectedError, 400),
    (StateMismatchError, 401),
    (AuthError, 401),
    (NotFoundError, 404),
    (InvalidKeyError, 400),
    (ConfigurationError, 503),
    (TransportError, 502),
    (ParseError, 500),
]


async def _domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code = next(code for kind, code in _ERROR_STATUS if isinstance(exc, kind))
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# ---------- App factory ----------

def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """Build the app.

    Args:
        settings: Overrides the environment-derived settings (tests).
        services: Prebuilt service graph (tests); built at startup otherwise.
    """
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Startup / shutdown hooks."""
        logger.info(
            "Starting %s v%s [%s]",
            settings.app_name,
            settings.app_version,
            settings.environment,
        )
        http_client: httpx.AsyncClient | None = None
        if services is None:
            http_client = httpx.AsyncClient(timeout=settings.strava_http_timeout_seconds)
            app.state.services = build_services(settings, http_client=http_client)
        yield
        if http_client is not None:
            await http_client.aclose()
        logger.info("%s shut down", settings.app_name)

    app = FastAPI(
        title="GPX Grid Challenge API",
        description="Activity storage and Strava synchronization.",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services
    app.dependency_overrides[get_settings] = lambda: settings

    # ---------- Middleware (last added runs first) ----------

    app.add_middleware(ClerkAuthMiddleware, settings=settings)

    # CORS is added last so it answers preflight before auth runs
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for kind, _ in _ERROR_STATUS:
        app.add_exception_handler(kind, _domain_error_handler)

    # ---------- Health check (unprefixed, public) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    v1_prefix = "/api/v1"
    app.include_router(activities.router, prefix=v1_prefix)
    app.include_router(strava.router, prefix=v1_prefix)

    return app


app = create_app()
