"""Great-circle distances."""

from __future__ import annotations

import math
from typing import Sequence

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the haversine distance in km between two ``(lat, lng)`` points."""
    lat1, lng1 = a
    lat2, lng2 = b
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def polyline_distance_km(points: Sequence[Sequence[float]]) -> float:
    """Sum of haversine distances between consecutive points; 0 for < 2 points."""
    if len(points) < 2:
        return 0.0
    return sum(haversine_km(points[i - 1], points[i]) for i in range(1, len(points)))
