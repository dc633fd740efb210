"""Strava integration.

Modules:
    client — OAuth2 + activity listing over httpx
    state  — Per-user SyncState persisted through the storage driver
    dedup  — Bounded most-recent-first set of imported activity ids
    engine — Authorization lifecycle and incremental sync
"""

from gpxgrid.strava.client import StravaClient, TokenGrant
from gpxgrid.strava.engine import StravaStatus, StravaSyncEngine, SyncResult
from gpxgrid.strava.state import StravaStateRepository, SyncState, SyncSummary

__all__ = [
    "StravaClient",
    "TokenGrant",
    "StravaSyncEngine",
    "StravaStatus",
    "SyncResult",
    "StravaStateRepository",
    "SyncState",
    "SyncSummary",
]
