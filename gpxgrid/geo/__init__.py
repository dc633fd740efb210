"""Geometry helpers: polyline codec, haversine distance, GPX / GeoJSON assets."""

from gpxgrid.geo.distance import haversine_km, polyline_distance_km
from gpxgrid.geo.polyline import LatLng, decode_polyline, encode_polyline

__all__ = [
    "LatLng",
    "encode_polyline",
    "decode_polyline",
    "haversine_km",
    "polyline_distance_km",
]
