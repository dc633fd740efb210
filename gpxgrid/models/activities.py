"""Pydantic models for the activity and Strava HTTP endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from gpxgrid.activities.models import ActivityRecord
from gpxgrid.activities.sports import SportCatalog
from gpxgrid.models.base import CamelModel


# ---------- Activities ----------

class ActivityRead(CamelModel):
    id: str
    name: str
    sport: str
    color: str
    visible: bool = True
    file_name: str
    points: list[tuple[float, float]]
    distance_km: float
    created_at: int

    @classmethod
    def from_record(cls, record: ActivityRecord, sports: SportCatalog) -> ActivityRead:
        return cls(
            id=record.id,
            name=record.name,
            sport=record.sport.value,
            color=sports.meta(record.sport).color,
            file_name=record.file_name,
            points=record.points,
            distance_km=record.distance_km,
            created_at=record.created_at,
        )


class ActivityList(CamelModel):
    activities: list[ActivityRead] = Field(default_factory=list)


class ActivityUpload(CamelModel):
    """Loosely typed upload entry; invalid entries are dropped, not rejected."""

    name: Any = None
    sport: Any = None
    file_name: Any = None
    points: Any = None
    raw_gpx: Any = None


class ActivityUploadBatch(CamelModel):
    activities: list[ActivityUpload]


# ---------- Strava ----------

class StravaExchangeRequest(CamelModel):
    code: str | None = None
    state: str | None = None


class SyncSummaryRead(CamelModel):
    attempted_at: int
    imported: int
    considered: int


class StravaStatusRead(CamelModel):
    configured: bool
    connected: bool
    athlete_name: str | None = None
    last_sync: SyncSummaryRead | None = None


class StravaStatusResponse(CamelModel):
    status: StravaStatusRead
    scope: str


class StravaSyncResponse(CamelModel):
    activities: list[ActivityRead] = Field(default_factory=list)
    summary: SyncSummaryRead
