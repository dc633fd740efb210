"""Activity catalog endpoints: list, upload, delete."""

from __future__ import annotations

import logging
import math
from typing import Any

from fastapi import APIRouter, HTTPException

from gpxgrid.activities.models import ActivityInput, ActivityRecord
from gpxgrid.activities.sports import Sport, SportCatalog, get_sport_catalog
from gpxgrid.dependencies import ActivityStore, CurrentUser
from gpxgrid.errors import ParseError
from gpxgrid.geo.polyline import LatLng
from gpxgrid.models.activities import ActivityList, ActivityRead, ActivityUpload, ActivityUploadBatch

router = APIRouter(prefix="/activities", tags=["activities"])
logger = logging.getLogger("gpxgrid.routers.activities")

DEFAULT_FILE_NAME = "activity.gpx"


def to_activity_list(records: list[ActivityRecord], sports: SportCatalog) -> list[ActivityRead]:
    """Render records, dropping any whose stored track cannot be decoded."""
    rendered: list[ActivityRead] = []
    for record in records:
        try:
            rendered.append(ActivityRead.from_record(record, sports))
        except ParseError as exc:
            logger.warning("Skipping activity %s with corrupt track: %s", record.id, exc)
    return rendered


def _sanitize_points(value: Any) -> list[LatLng]:
    if not isinstance(value, list):
        return []
    points: list[LatLng] = []
    for entry in value:
        if not isinstance(entry, (list, tuple)) or len(entry) != 2:
            continue
        try:
            lat, lng = float(entry[0]), float(entry[1])
        except (TypeError, ValueError):
            continue
        if math.isfinite(lat) and math.isfinite(lng):
            points.append((lat, lng))
    return points


def _sanitize_entry(entry: ActivityUpload) -> ActivityInput | None:
    points = _sanitize_points(entry.points)
    if len(points) < 2:
        return None

    try:
        sport = Sport(entry.sport)
    except ValueError:
        return None

    if not isinstance(entry.raw_gpx, str) or not entry.raw_gpx.strip():
        return None

    file_name = (
        entry.file_name.strip()
        if isinstance(entry.file_name, str) and entry.file_name.strip()
        else DEFAULT_FILE_NAME
    )
    name = entry.name.strip() if isinstance(entry.name, str) else ""
    if not name:
        name = file_name[:-4] if file_name.lower().endswith(".gpx") else file_name

    return ActivityInput(
        name=name,
        sport=sport,
        file_name=file_name,
        points=points,
        raw_gpx=entry.raw_gpx,
    )


@router.get("", response_model=ActivityList)
async def list_activities(user: CurrentUser, store: ActivityStore) -> Any:
    records = await store.list(user.user_id)
    return ActivityList(activities=to_activity_list(records, get_sport_catalog()))


@router.post("", response_model=ActivityList, status_code=201)
async def upload_activities(
    user: CurrentUser, store: ActivityStore, body: ActivityUploadBatch
) -> Any:
    inputs = [parsed for parsed in map(_sanitize_entry, body.activities) if parsed]
    if not inputs:
        raise HTTPException(status_code=400, detail="No valid activities to store")

    created = await store.append(user.user_id, inputs)
    return ActivityList(activities=to_activity_list(created, get_sport_catalog()))


@router.delete("/{activity_id}")
async def delete_activity(activity_id: str, user: CurrentUser, store: ActivityStore) -> Any:
    activity_id = activity_id.strip()
    if not activity_id:
        raise HTTPException(status_code=400, detail="Missing activity id")

    removed = await store.delete(user.user_id, activity_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Activity not found")
    return {"success": True}
