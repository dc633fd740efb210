"""Shared fixtures for activity store tests."""

from __future__ import annotations

import itertools
from pathlib import Path

import pytest

from gpxgrid.activities.models import ActivityInput
from gpxgrid.activities.sports import Sport
from gpxgrid.activities.store import ActivityRecordStore
from gpxgrid.storage.local import LocalStorageDriver

TEST_USER_ID = "user_test_123"
FIXED_NOW_MS = 1_714_550_400_000  # 2024-05-01T08:00:00Z

LOOP_POINTS = [(46.0, 7.0), (46.01, 7.01), (46.02, 7.0)]
LINE_POINTS = [(45.5, 6.5), (45.5, 6.6), (45.6, 6.6)]


@pytest.fixture
def storage(tmp_path: Path) -> LocalStorageDriver:
    return LocalStorageDriver(tmp_path)


@pytest.fixture
def store(storage: LocalStorageDriver) -> ActivityRecordStore:
    counter = itertools.count(1)
    return ActivityRecordStore(
        storage,
        clock_ms=lambda: FIXED_NOW_MS,
        id_factory=lambda: f"act-{next(counter)}",
    )


@pytest.fixture
def upload_input() -> ActivityInput:
    """An uploaded GPX file."""
    return ActivityInput(
        name="Loop",
        sport=Sport.HIKING,
        file_name="loop.gpx",
        points=list(LOOP_POINTS),
        raw_gpx="<gpx>loop</gpx>",
    )


@pytest.fixture
def points_only_input() -> ActivityInput:
    """Points without a GPX source; stored as GeoJSON."""
    return ActivityInput(
        name="Line",
        sport=Sport.ROAD_CYCLING,
        file_name="line.gpx",
        points=list(LINE_POINTS),
    )
