"""Incremental, idempotent Strava → activity catalog synchronization.

Connection lifecycle per user::

    Unconfigured ─(client configured)→ Configured
    Configured ─build_authorize_url→ PendingAuthorization(nonce)
    PendingAuthorization ─exchange_code→ Connected
    Connected ─ensure_valid_tokens (refresh)→ Connected

Sync workflow:
    1. Refresh the access token if it expires within 60 seconds
    2. Fetch activities started after the cursor (50 per page, max 3 pages)
    3. Skip ids already imported, unmapped sport types, and tracks < 2 points
    4. Synthesize a GPX file per accepted activity and append to the catalog
    5. Advance the cursor, prepend imported ids (capped), record a summary
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from gpxgrid.activities.models import ActivityInput, ActivityRecord
from gpxgrid.activities.sports import SportCatalog, get_sport_catalog
from gpxgrid.activities.store import ActivityRecordStore
from gpxgrid.errors import (
    ConfigurationError,
    NotConnectedError,
    ParseError,
    StateMismatchError,
)
from gpxgrid.geo.gpx import build_gpx
from gpxgrid.geo.polyline import decode_polyline
from gpxgrid.locking import KeyedLock
from gpxgrid.strava.client import StravaClient
from gpxgrid.strava.dedup import RecentIdSet, activity_id
from gpxgrid.strava.state import AthleteProfile, StravaStateRepository, SyncState, SyncSummary

logger = logging.getLogger("gpxgrid.strava.engine")

TOKEN_EXPIRY_BUFFER_SECONDS = 60
PER_PAGE = 50
MAX_SYNC_PAGES = 3
DEFAULT_ACTIVITY_NAME = "Strava activity"


@dataclass
class StravaStatus:
    configured: bool
    connected: bool
    athlete_name: str | None = None
    last_sync: SyncSummary | None = None


@dataclass
class SyncResult:
    imported: list[ActivityRecord] = field(default_factory=list)
    summary: SyncSummary | None = None


def _start_seconds(value: Any) -> int:
    """Parse a Strava ``start_date`` into unix seconds; 0 when absent or invalid."""
    if not value:
        return 0
    try:
        return int(datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp())
    except ValueError:
        logger.warning("Could not parse activity start_date: %r", value)
        return 0


class StravaSyncEngine:
    """Connect users to Strava and import their activities.

    Usage::

        engine = StravaSyncEngine(
            client=StravaClient.from_settings(settings),
            states=StravaStateRepository(storage),
            store=ActivityRecordStore(storage),
        )
        url = await engine.build_authorize_url("user_1")
        await engine.exchange_code("user_1", code, state)
        result = await engine.sync("user_1")
    """

    def __init__(
        self,
        client: StravaClient | None,
        states: StravaStateRepository,
        store: ActivityRecordStore,
        sports: SportCatalog | None = None,
        clock: Callable[[], float] = time.time,
        nonce_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        """Initialize the engine.

        Args:
            client:        Strava client, or None when the app is not configured.
            states:        Per-user SyncState persistence.
            store:         Activity catalog receiving imports.
            sports:        Sport catalog; defaults to the bundled sports.yaml.
            clock:         Returns unix time in seconds (float).
            nonce_factory: Returns a fresh OAuth ``state`` nonce.
        """
        self._client = client
        self._states = states
        self._store = store
        self._sports = sports or get_sport_catalog()
        self._clock = clock
        self._nonce_factory = nonce_factory
        self._locks = KeyedLock()

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _require_client(self) -> StravaClient:
        if self._client is None:
            raise ConfigurationError("Strava is not configured on the server.")
        return self._client

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def status(self, user_id: str) -> StravaStatus:
        state = await self._states.load(user_id)
        if not state.connected:
            return StravaStatus(configured=self.configured, connected=False)
        return StravaStatus(
            configured=self.configured,
            connected=True,
            athlete_name=state.athlete.display_name if state.athlete else None,
            last_sync=state.last_sync_summary,
        )

    async def build_authorize_url(self, user_id: str) -> str:
        """Start authorization: persist a fresh nonce and return the consent URL."""
        client = self._require_client()
        nonce = self._nonce_factory()

        async with self._locks(user_id):
            state = await self._states.load(user_id)
            state.pending_auth_state = nonce
            await self._states.save(user_id, state)

        logger.info("Strava: authorization started for user %s", user_id)
        return client.authorize_url(nonce)

    async def exchange_code(self, user_id: str, code: str, state: str | None) -> None:
        """Finish authorization with the code from the OAuth callback.

        Raises:
            StateMismatchError: If a nonce is pending and ``state`` does not match it.
            AuthError:          If Strava rejects the code.
        """
        client = self._require_client()

        async with self._locks(user_id):
            current = await self._states.load(user_id)
            # A missing state counts as a mismatch while a nonce is pending.
            if current.pending_auth_state and current.pending_auth_state != state:
                raise StateMismatchError("State mismatch. Start the Strava connection again.")

            grant = await client.exchange_code(code)
            current.access_token = grant.access_token
            current.refresh_token = grant.refresh_token
            current.expires_at = grant.expires_at
            current.athlete = (
                AthleteProfile.model_validate(grant.athlete) if grant.athlete else None
            )
            current.pending_auth_state = None
            await self._states.save(user_id, current)

        logger.info("Strava: user %s connected", user_id)

    async def ensure_valid_tokens(self, user_id: str) -> SyncState:
        """Return the user's state with an access token valid for at least 60 s.

        Raises:
            NotConnectedError: If the user never completed authorization.
        """
        async with self._locks(user_id):
            return await self._ensure_valid_tokens(user_id)

    async def _ensure_valid_tokens(self, user_id: str) -> SyncState:
        client = self._require_client()
        state = await self._states.load(user_id)
        if not state.connected:
            raise NotConnectedError("Strava is not connected for this user.")

        now = int(self._clock())
        if state.expires_at <= now + TOKEN_EXPIRY_BUFFER_SECONDS:
            logger.info("Strava: refreshing access token for user %s", user_id)
            grant = await client.refresh_token(state.refresh_token)
            state.access_token = grant.access_token
            state.refresh_token = grant.refresh_token
            state.expires_at = grant.expires_at
            await self._states.save(user_id, state)

        return state

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def sync(self, user_id: str) -> SyncResult:
        """Import new Strava activities into the user's catalog.

        Safe to repeat: activities whose ids were already imported are never
        imported again, whatever the cursor says.
        """
        client = self._require_client()

        async with self._locks(user_id):
            state = await self._ensure_valid_tokens(user_id)
            after = state.last_activity_cursor or 0
            activities = await self._fetch_recent(client, state.access_token, after)

            seen = RecentIdSet(state.imported_activity_ids)
            inputs: list[ActivityInput] = []
            new_ids: list[int] = []
            newest = after

            for activity in activities:
                newest = max(newest, _start_seconds(activity.get("start_date")))

                strava_id = activity_id(activity)
                if strava_id is not None and (strava_id in seen or strava_id in new_ids):
                    continue

                parsed = self.build_activity_input(activity)
                if parsed is None:
                    continue
                inputs.append(parsed)
                if strava_id is not None:
                    new_ids.append(strava_id)

            stored = await self._store.append(user_id, inputs)

            summary = SyncSummary(
                attempted_at=int(self._clock() * 1000),
                imported=len(stored),
                considered=len(activities),
            )
            seen.add_recent(new_ids)
            state.imported_activity_ids = seen.to_list()
            state.last_activity_cursor = newest
            state.last_sync_summary = summary
            await self._states.save(user_id, state)

        logger.info(
            "Strava: sync for user %s imported %d of %d activities (cursor=%d)",
            user_id,
            summary.imported,
            summary.considered,
            newest,
        )
        return SyncResult(imported=stored, summary=summary)

    def build_activity_input(self, activity: dict[str, Any]) -> ActivityInput | None:
        """Convert a Strava activity summary into a catalog input.

        Returns None (skip, not an error) when the sport type is unmapped or
        the activity has no usable track.
        """
        sport = self._sports.from_strava(activity.get("sport_type") or activity.get("type"))
        if sport is None:
            return None

        track = activity.get("map") or {}
        encoded = track.get("summary_polyline") or track.get("polyline")
        if not encoded:
            return None

        try:
            points = decode_polyline(encoded)
        except ParseError as exc:
            logger.warning("Skipping Strava activity %s: %s", activity.get("id"), exc)
            return None
        if len(points) < 2:
            return None

        name = (activity.get("name") or "").strip() or DEFAULT_ACTIVITY_NAME
        return ActivityInput(
            name=name,
            sport=sport,
            file_name=f"strava-{activity.get('id')}.gpx",
            points=points,
            raw_gpx=build_gpx(name, activity.get("start_date"), points),
        )

    @staticmethod
    async def _fetch_recent(
        client: StravaClient, access_token: str, after: int
    ) -> list[dict[str, Any]]:
        collected: list[dict[str, Any]] = []
        for page in range(1, MAX_SYNC_PAGES + 1):
            results = await client.list_activities(access_token, after, page, PER_PAGE)
            if not results:
                break
            collected.extend(results)
            if len(results) < PER_PAGE:
                break
        return collected
