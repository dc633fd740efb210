"""GPX / GeoJSON document builders and gzip helpers for geometry assets."""

from __future__ import annotations

import gzip
import json
import logging
from datetime import datetime, timezone
from typing import Sequence
from xml.sax.saxutils import escape

logger = logging.getLogger("gpxgrid.geo.gpx")

GPX_CREATOR = "GPX Grid Challenge"
DEFAULT_TRACK_NAME = "Strava Activity"

_XML_ATTR_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def _iso_timestamp(value: str | int | float | datetime | None) -> str:
    """Render a start time as ISO-8601 UTC with milliseconds.

    Accepts ISO strings, epoch milliseconds, or datetimes.  Missing or
    unparseable values fall back to the current time.
    """
    moment: datetime | None = None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, (int, float)):
        moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str) and value:
        try:
            moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Could not parse start time: %r", value)

    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)

    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def build_gpx(
    name: str,
    start_time: str | int | float | datetime | None,
    points: Sequence[Sequence[float]],
) -> str:
    """Build a minimal GPX 1.1 document with one track segment.

    Args:
        name:       Track name; blank names become ``"Strava Activity"``.
        start_time: Activity start (ISO string, epoch ms or datetime).
        points:     ``(lat, lng)`` pairs.

    Returns:
        GPX XML text with a trailing newline.
    """
    safe_name = escape(name or DEFAULT_TRACK_NAME, _XML_ATTR_ENTITIES)
    track_points = "\n".join(
        f'      <trkpt lat="{lat:.6f}" lon="{lng:.6f}"></trkpt>' for lat, lng in points
    )
    return "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<gpx version="1.1" creator="{GPX_CREATOR}" xmlns="http://www.topografix.com/GPX/1/1">',
            "  <metadata>",
            f"    <name>{safe_name}</name>",
            f"    <time>{_iso_timestamp(start_time)}</time>",
            "  </metadata>",
            "  <trk>",
            f"    <name>{safe_name}</name>",
            "    <trkseg>",
            track_points,
            "    </trkseg>",
            "  </trk>",
            "</gpx>",
            "",
        ]
    )


def build_geojson(name: str, points: Sequence[Sequence[float]]) -> dict:
    """Return a GeoJSON Feature with a LineString geometry.

    GeoJSON positions are ``[lng, lat]``, the reverse of our point tuples.
    """
    return {
        "type": "Feature",
        "properties": {"name": name},
        "geometry": {
            "type": "LineString",
            "coordinates": [[lng, lat] for lat, lng in points],
        },
    }


def compress_text(text: str) -> bytes:
    return gzip.compress(text.encode("utf-8"))


def compress_json(document: dict) -> bytes:
    return compress_text(json.dumps(document, separators=(",", ":")))


def decompress(data: bytes) -> bytes:
    return gzip.decompress(data)
