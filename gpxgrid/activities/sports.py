"""Load and validate the sport catalog.

The catalog lives in ``sports.yaml`` alongside this module.  It is loaded
once and cached; ``load_sport_catalog(path)`` reads an alternative file
(used by tests).

Usage::

    from gpxgrid.activities.sports import get_sport_catalog

    catalog = get_sport_catalog()
    catalog.from_strava("TrailRun")     # Sport.WALKING
    catalog.meta(Sport.HIKING).color    # "#f97316"
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import yaml

from gpxgrid.errors import ConfigurationError

logger = logging.getLogger("gpxgrid.activities.sports")

_CATALOG_PATH = Path(__file__).parent / "sports.yaml"


class Sport(str, Enum):
    """Internal sport ids, as persisted in activity metadata."""

    WALKING = "walking"
    HIKING = "hiking"
    ALPINE_SKI = "alpine-ski"
    NORDIC_SKI = "nordic-ski"
    TOURING_SKI = "touring-ski"
    ROAD_CYCLING = "road-cycling"
    GRAVEL_CYCLING = "gravel-cycling"
    MOUNTAIN_CYCLING = "mountain-cycling"


@dataclass(frozen=True)
class SportOption:
    """Display metadata for one sport."""

    sport: Sport
    label: str
    color: str


@dataclass
class SportCatalog:
    """Validated in-memory form of sports.yaml.

    Attributes:
        version:      Catalog schema version.
        options:      Display metadata per sport, in file order.
        default:      Sport whose metadata is used as a fallback.
        strava_types: Strava sport type -> internal sport.
    """

    version: str
    options: dict[Sport, SportOption]
    default: Sport
    strava_types: dict[str, Sport] = field(default_factory=dict)

    def meta(self, sport: Sport | str) -> SportOption:
        """Return display metadata, falling back to the default sport."""
        try:
            return self.options[Sport(sport)]
        except (ValueError, KeyError):
            return self.options[self.default]

    def from_strava(self, sport_type: str | None) -> Sport | None:
        """Map a Strava sport type to an internal sport; ``None`` if unmapped."""
        if not sport_type:
            return None
        return self.strava_types.get(sport_type)


class SportCatalogError(ConfigurationError):
    """Raised when sports.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"Sport catalog not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise SportCatalogError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> SportCatalog:
    """Validate the parsed YAML and build a SportCatalog.

    Raises:
        SportCatalogError: Listing every problem found.
    """
    errors: list[str] = []

    options: dict[Sport, SportOption] = {}
    for sport_id, cfg in (raw.get("sports") or {}).items():
        try:
            sport = Sport(sport_id)
        except ValueError:
            errors.append(f"sports.{sport_id} is not a known sport id")
            continue
        if not isinstance(cfg, dict):
            errors.append(f"sports.{sport_id} must be a mapping")
            continue
        options[sport] = SportOption(
            sport=sport,
            label=str(cfg.get("label", sport_id)),
            color=str(cfg.get("color", "#0ea5e9")),
        )

    missing = [sport.value for sport in Sport if sport not in options]
    if missing:
        errors.append(f"sports is missing: {', '.join(missing)}")

    default_raw = raw.get("default_sport", Sport.WALKING.value)
    try:
        default = Sport(default_raw)
    except ValueError:
        errors.append(f"default_sport {default_raw!r} is not a known sport id")
        default = Sport.WALKING

    strava_types: dict[str, Sport] = {}
    for sport_type, sport_id in (raw.get("strava_sport_types") or {}).items():
        try:
            strava_types[str(sport_type)] = Sport(sport_id)
        except ValueError:
            errors.append(f"strava_sport_types.{sport_type} -> {sport_id!r} is not a known sport id")

    if errors:
        raise SportCatalogError(
            f"sports.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return SportCatalog(
        version=str(raw.get("version", "1.0")),
        options=options,
        default=default,
        strava_types=strava_types,
    )


def load_sport_catalog(path: Path | None = None) -> SportCatalog:
    """Load and validate a sport catalog from disk."""
    target = path or _CATALOG_PATH
    catalog = _validate_and_build(_load_yaml(target))
    logger.info(
        "Loaded sport catalog v%s (%d Strava types) from %s",
        catalog.version,
        len(catalog.strava_types),
        target,
    )
    return catalog


_catalog: SportCatalog | None = None
_catalog_lock = threading.Lock()


def get_sport_catalog() -> SportCatalog:
    """Return the global SportCatalog, loading it on first call.  Thread-safe."""
    global _catalog
    if _catalog is None:
        with _catalog_lock:
            if _catalog is None:
                _catalog = load_sport_catalog()
    return _catalog
