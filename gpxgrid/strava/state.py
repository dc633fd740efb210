"""Per-user Strava connection state, persisted as JSON through a StorageDriver."""

from __future__ import annotations

import json
import logging

from pydantic import Field, ValidationError

from gpxgrid.errors import NotFoundError, ParseError
from gpxgrid.models.base import CamelModel
from gpxgrid.storage.base import StorageDriver

logger = logging.getLogger("gpxgrid.strava.state")


class SyncSummary(CamelModel):
    """Outcome of the latest sync run.  ``attempted_at`` is epoch ms."""

    attempted_at: int
    imported: int
    considered: int


class AthleteProfile(CamelModel):
    id: int | None = None
    firstname: str | None = None
    lastname: str | None = None
    username: str | None = None
    profile: str | None = None

    @property
    def display_name(self) -> str | None:
        full = " ".join(part for part in (self.firstname, self.lastname) if part).strip()
        return full or self.username


class SyncState(CamelModel):
    """Everything we remember about one user's Strava connection.

    Attributes:
        access_token:          Current Bearer token.
        refresh_token:         Token used to renew ``access_token``.
        expires_at:            Access token expiry, unix seconds.
        athlete:               Athlete summary from the code exchange.
        imported_activity_ids: Recently imported Strava ids, most recent first.
        last_activity_cursor:  Latest activity start time seen, unix seconds.
        last_sync_summary:     Result of the latest sync.
        pending_auth_state:    Nonce of an authorization still in flight.
    """

    access_token: str | None = Field(default=None, repr=False)
    refresh_token: str | None = Field(default=None, repr=False)
    expires_at: int | None = None
    athlete: AthleteProfile | None = None
    imported_activity_ids: list[int] = Field(default_factory=list)
    last_activity_cursor: int | None = None
    last_sync_summary: SyncSummary | None = None
    pending_auth_state: str | None = None

    @property
    def connected(self) -> bool:
        return bool(self.access_token and self.refresh_token and self.expires_at)


class StravaStateRepository:
    """Load / save SyncState blobs at ``strava/<user_id>.json``."""

    def __init__(self, storage: StorageDriver) -> None:
        self._storage = storage

    @staticmethod
    def state_key(user_id: str) -> str:
        return f"strava/{user_id}.json"

    async def load(self, user_id: str) -> SyncState:
        """Return the stored state, or a fresh one if none exists yet.

        Raises:
            ParseError: If the stored blob is not a valid state document.
        """
        key = self.state_key(user_id)
        try:
            content = await self._storage.read_text(key)
        except NotFoundError:
            return SyncState()
        except UnicodeDecodeError as exc:
            raise ParseError(f"Malformed Strava state {key}: {exc}") from exc

        try:
            return SyncState.model_validate(json.loads(content) or {})
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ParseError(f"Malformed Strava state {key}: {exc}") from exc

    async def save(self, user_id: str, state: SyncState) -> None:
        document = json.dumps(
            state.model_dump(by_alias=True, mode="json", exclude_none=True), indent=2
        )
        await self._storage.write(self.state_key(user_id), f"{document}\n", "application/json")
