"""Per-user activity catalog.

Modules:
    sports — Sport enum and the YAML-backed sport catalog (labels, colours, Strava types)
    models — ActivityRecord / AssetRef / ActivityInput
    store  — ActivityRecordStore (list / append / delete)
"""

from gpxgrid.activities.models import ActivityInput, ActivityRecord, AssetKind, AssetRef
from gpxgrid.activities.sports import Sport, SportCatalog, get_sport_catalog
from gpxgrid.activities.store import ActivityRecordStore

__all__ = [
    "ActivityInput",
    "ActivityRecord",
    "ActivityRecordStore",
    "AssetKind",
    "AssetRef",
    "Sport",
    "SportCatalog",
    "get_sport_catalog",
]
