"""GPX Grid Challenge — durable storage and Strava synchronization core.

Subpackages:
    storage/    — Keyed blob drivers (local filesystem, S3-compatible bucket with SigV4)
    geo/        — Polyline codec, haversine distance, GPX / GeoJSON helpers
    activities/ — Per-user activity catalog and the sport catalog
    strava/     — OAuth client, per-user sync state, incremental sync engine
"""
