"""Clerk JWT verification middleware for FastAPI.

When Clerk keys are configured, validates the Bearer token on every request
(except public routes) and sets ``request.state.auth``.  Without Clerk the
app runs single-user: outside production every request acts as
``DEV_STORAGE_USER_ID``; in production every protected request is refused.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt as pyjwt
from fastapi import Request, Response
from jwt import PyJWKClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from gpxgrid.config import Settings, get_settings
from gpxgrid.dependencies import AuthContext

logger = logging.getLogger("gpxgrid.auth")

# Paths that do not require authentication
PUBLIC_PATHS: set[str] = {
    "/",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


def _is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc")


def _unauthorized(detail: str) -> Response:
    return Response(
        content=f'{{"detail":"{detail}"}}',
        status_code=401,
        media_type="application/json",
    )


class ClerkAuthMiddleware(BaseHTTPMiddleware):
    """Verify Clerk-issued JWTs and populate request.state.auth."""

    def __init__(self, app: Any, settings: Settings | None = None) -> None:
        super().__init__(app)
        self._settings = settings or get_settings()
        self._jwks_client: PyJWKClient | None = None
        if self._settings.clerk_configured:
            self._jwks_client = PyJWKClient(
                self._settings.clerk_jwks_url,
                cache_keys=True,
                lifespan=3600,
            )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if _is_public(request.url.path) or request.method == "OPTIONS":
            return await call_next(request)

        if self._jwks_client is None:
            if self._settings.environment == "production":
                return _unauthorized("Unauthorized")
            request.state.auth = AuthContext(user_id=self._settings.dev_storage_user_id)
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return _unauthorized("Missing or invalid Authorization header")

        token = auth_header.removeprefix("Bearer ").strip()

        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(token)
            payload = pyjwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                options={"verify_aud": False},  # Clerk tokens use azp, not aud
            )
        except pyjwt.ExpiredSignatureError:
            return _unauthorized("Token expired")
        except pyjwt.InvalidTokenError as exc:
            logger.warning("JWT validation failed: %s", exc)
            return _unauthorized("Invalid token")

        user_id: str = payload.get("sub", "")
        if not user_id:
            return _unauthorized("Invalid token")

        request.state.auth = AuthContext(
            user_id=user_id,
            email=payload.get("email"),
            session_id=payload.get("sid"),
        )
        return await call_next(request)
