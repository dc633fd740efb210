"""Activity catalog records and store inputs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any

from pydantic import model_validator

from gpxgrid.activities.sports import Sport
from gpxgrid.geo.polyline import LatLng, decode_polyline
from gpxgrid.models.base import CamelModel


class AssetKind(str, Enum):
    GPX = "gpx"
    GEOJSON = "geojson"


class AssetRef(CamelModel):
    """Tagged reference to a record's compressed geometry asset.

    ``path`` is relative to the owning user's activity directory, e.g.
    ``gpx/<id>.gpx.gz``.
    """

    kind: AssetKind
    path: str


class ActivityRecord(CamelModel):
    """One entry of a user's activity catalog, as persisted in activities.json.

    Attributes:
        id:             Unique id within the user's catalog (uuid4 hex string).
        name:           Display name.
        sport:          Internal sport id.
        file_name:      Original upload name, or ``strava-<id>.gpx`` for imports.
        distance_km:    Haversine length of the track; fixed at creation.
        created_at:     Creation time in epoch milliseconds.
        encoded_points: Polyline-encoded track (precision 5).
        asset:          Where the full geometry payload is stored.
    """

    id: str
    name: str
    sport: Sport
    file_name: str
    distance_km: float
    created_at: int
    encoded_points: str
    asset: AssetRef

    @model_validator(mode="before")
    @classmethod
    def _upgrade_legacy_asset(cls, data: Any) -> Any:
        # Older catalogs carry a bare gpxPath / geojsonPath instead of ``asset``.
        if isinstance(data, dict) and "asset" not in data:
            if data.get("gpxPath"):
                return {**data, "asset": {"kind": AssetKind.GPX, "path": data["gpxPath"]}}
            if data.get("geojsonPath"):
                return {
                    **data,
                    "asset": {"kind": AssetKind.GEOJSON, "path": data["geojsonPath"]},
                }
        return data

    @cached_property
    def points(self) -> list[LatLng]:
        """Decoded track, computed on first access.

        Raises:
            ParseError: If ``encoded_points`` is corrupt.
        """
        return decode_polyline(self.encoded_points)

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


@dataclass
class ActivityInput:
    """A new activity handed to ``ActivityRecordStore.append``.

    Exactly one geometry payload is stored: ``raw_gpx`` when present,
    otherwise ``geojson`` (built from ``points`` when not supplied).
    """

    name: str
    sport: Sport
    file_name: str
    points: list[LatLng]
    raw_gpx: str | None = None
    geojson: dict | None = field(default=None, repr=False)
