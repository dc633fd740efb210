"""Strava API v3 client: OAuth2 code exchange, token refresh, activity listing.

Environment variables (read through ``gpxgrid.config.Settings``):
    STRAVA_CLIENT_ID      — OAuth2 client ID
    STRAVA_CLIENT_SECRET  — OAuth2 client secret
    STRAVA_REDIRECT_URI   — OAuth2 redirect URI registered with Strava
    STRAVA_SCOPE          — Requested scope (default ``read,activity:read_all``)

Endpoints used:
    /oauth/authorize           — User consent page (browser redirect)
    /oauth/token               — Code exchange and refresh
    /api/v3/athlete/activities — Paginated activity list (after, page, per_page)

One client is built at startup and injected wherever Strava is needed.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx

from gpxgrid.config import Settings
from gpxgrid.errors import AuthError, ConfigurationError, TransportError

logger = logging.getLogger("gpxgrid.strava.client")

STRAVA_AUTH_URL = "https://www.strava.com/oauth/authorize"
STRAVA_TOKEN_URL = "https://www.strava.com/oauth/token"
STRAVA_API_BASE = "https://www.strava.com/api/v3"
DEFAULT_SCOPE = "read,activity:read_all"


@dataclass
class TokenGrant:
    """Token triple returned by a code exchange or refresh.

    Attributes:
        access_token:  Bearer token for API calls.
        refresh_token: Token used to obtain the next access token.
        expires_at:    Expiry as unix seconds.
        athlete:       Athlete summary (code exchange only).
    """

    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
    expires_at: int
    athlete: dict | None = None


class StravaClient:
    """Thin async wrapper around the Strava OAuth and activity endpoints."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scope: str = DEFAULT_SCOPE,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 20.0,
    ) -> None:
        """Initialize the Strava client.

        Args:
            client_id:       OAuth2 client ID.
            client_secret:   OAuth2 client secret.
            redirect_uri:    Redirect URI sent with the authorize request.
            scope:           Comma-separated OAuth scopes.
            http_client:     Optional pre-configured httpx client (for testing).
            timeout_seconds: Timeout for the per-call client when none is injected.
        """
        if not (client_id and client_secret and redirect_uri):
            raise ConfigurationError(
                "Missing Strava credentials. Set STRAVA_CLIENT_ID, "
                "STRAVA_CLIENT_SECRET, and STRAVA_REDIRECT_URI."
            )
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._scope = scope
        self._http_client = http_client
        self._timeout = timeout_seconds

    @classmethod
    def from_settings(
        cls, settings: Settings, http_client: httpx.AsyncClient | None = None
    ) -> StravaClient:
        """Build a client from app settings.

        Raises:
            ConfigurationError: If the Strava app credentials are incomplete.
        """
        return cls(
            client_id=settings.strava_client_id or "",
            client_secret=settings.strava_client_secret or "",
            redirect_uri=settings.strava_redirect_uri or "",
            scope=settings.strava_scope,
            http_client=http_client,
            timeout_seconds=settings.strava_http_timeout_seconds,
        )

    @property
    def scope(self) -> str:
        return self._scope

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    def authorize_url(self, state: str) -> str:
        """Return the consent URL carrying ``state`` as the anti-CSRF nonce."""
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
            "scope": self._scope,
            "approval_prompt": "auto",
            "state": state,
        }
        return f"{STRAVA_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code for tokens and the athlete profile.

        Raises:
            AuthError:      If Strava rejects the code or returns no tokens.
            TransportError: On any other non-2xx response.
        """
        data = await self._post_token(
            {
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "code": code,
                "grant_type": "authorization_code",
            }
        )
        if not (data.get("access_token") and data.get("refresh_token") and self._expiry(data)):
            raise AuthError("Unable to exchange code for tokens.")

        return TokenGrant(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_at=self._expiry(data),
            athlete=data.get("athlete"),
        )

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Trade a refresh token for a new token triple.

        Raises:
            AuthError:      If the refresh token is invalid or revoked.
            TransportError: On any other non-2xx response.
        """
        data = await self._post_token(
            {
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
        )
        if not (data.get("access_token") and self._expiry(data)):
            raise AuthError("Strava refresh response did not contain a token.")

        return TokenGrant(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or refresh_token,
            expires_at=self._expiry(data),
        )

    # ------------------------------------------------------------------
    # Activities
    # ------------------------------------------------------------------

    async def list_activities(
        self, access_token: str, after: int, page: int, per_page: int
    ) -> list[dict[str, Any]]:
        """Fetch one page of the athlete's activities started after ``after``.

        Args:
            access_token: Valid Bearer token.
            after:        Unix seconds; only activities starting later are returned.
            page:         1-based page number.
            per_page:     Page size.

        Returns:
            List of activity summary dicts (empty when exhausted).
        """
        payload = await self._get(
            f"{STRAVA_API_BASE}/athlete/activities",
            params={"after": after, "page": page, "per_page": per_page},
            access_token=access_token,
        )
        return payload if isinstance(payload, list) else []

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _expiry(data: dict[str, Any]) -> int | None:
        if data.get("expires_at"):
            return int(data["expires_at"])
        if data.get("expires_in"):
            return int(time.time()) + int(data["expires_in"])
        return None

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._http_client:
            return await self._http_client.request(method, url, **kwargs)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(method, url, **kwargs)

    async def _post_token(self, form: dict[str, str]) -> dict[str, Any]:
        response = await self._send("POST", STRAVA_TOKEN_URL, data=form)
        if response.status_code in (400, 401):
            logger.warning("Strava token endpoint rejected %s grant", form["grant_type"])
            raise AuthError(f"Strava rejected the {form['grant_type']} grant: {response.text}")
        if not response.is_success:
            raise TransportError("Strava token request failed", response.status_code, response.text)
        return response.json()

    async def _get(self, url: str, params: dict, access_token: str) -> Any:
        """Make an authenticated GET request to the Strava API.

        Raises:
            AuthError:      On 401 (token revoked or expired).
            TransportError: On any other non-2xx response.
        """
        response = await self._send(
            "GET", url, params=params, headers={"Authorization": f"Bearer {access_token}"}
        )
        if response.status_code == 401:
            raise AuthError("Strava rejected the access token.")
        if not response.is_success:
            raise TransportError("Strava request failed", response.status_code, response.text)
        return response.json()
