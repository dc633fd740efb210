"""Per-user activity catalog on top of a StorageDriver.

Layout (relative to the storage root / bucket prefix)::

    activities/<user_id>/activities.json          catalog, pretty JSON array
    activities/<user_id>/gpx/<id>.gpx.gz          uploaded or synthesized GPX
    activities/<user_id>/geojson/<id>.geojson.gz  GeoJSON LineString

The catalog is rewritten in full on every mutation.  Mutations for one
user are serialized by an in-process lock; separate processes writing the
same user's catalog still race and the last write wins.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Callable

from pydantic import ValidationError

from gpxgrid.activities.models import ActivityInput, ActivityRecord, AssetKind, AssetRef
from gpxgrid.errors import NotFoundError, ParseError
from gpxgrid.geo.distance import polyline_distance_km
from gpxgrid.geo.gpx import build_geojson, compress_json, compress_text, decompress
from gpxgrid.geo.polyline import encode_polyline
from gpxgrid.locking import KeyedLock
from gpxgrid.storage.base import StorageDriver

logger = logging.getLogger("gpxgrid.activities.store")

METADATA_FILE = "activities.json"
GZIP_CONTENT_TYPE = "application/gzip"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return str(uuid.uuid4())


class ActivityRecordStore:
    """Read and mutate users' activity catalogs.

    Usage::

        store = ActivityRecordStore(build_storage_driver())
        created = await store.append("user_1", [ActivityInput(...)])
        records = await store.list("user_1")
        await store.delete("user_1", created[0].id)
    """

    def __init__(
        self,
        storage: StorageDriver,
        clock_ms: Callable[[], int] = _now_ms,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        """Initialize the store.

        Args:
            storage:    Driver holding catalogs and assets.
            clock_ms:   Returns the current time in epoch milliseconds.
            id_factory: Returns a fresh record id.
        """
        self._storage = storage
        self._clock_ms = clock_ms
        self._id_factory = id_factory
        self._locks = KeyedLock()

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    @staticmethod
    def user_prefix(user_id: str) -> str:
        return f"activities/{user_id}"

    def metadata_key(self, user_id: str) -> str:
        return f"{self.user_prefix(user_id)}/{METADATA_FILE}"

    def asset_key(self, user_id: str, asset: AssetRef) -> str:
        return f"{self.user_prefix(user_id)}/{asset.path}"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def list(self, user_id: str) -> list[ActivityRecord]:
        """Return the user's catalog, most recent first.

        A missing catalog is an empty one.  Points are decoded lazily via
        ``record.points``.

        Raises:
            ParseError: If the catalog blob is not a JSON array.
        """
        return await self._read_records(user_id)

    async def append(
        self, user_id: str, inputs: list[ActivityInput]
    ) -> list[ActivityRecord]:
        """Create records for ``inputs`` and prepend them to the catalog.

        Each input gets a fresh id, a creation timestamp, its haversine
        distance, its encoded track, and a compressed geometry asset.

        Returns:
            The newly created records, in input order.
        """
        if not inputs:
            return []

        async with self._locks(user_id):
            existing, unparsed = await self._read_catalog(user_id)
            taken = {record.id for record in existing}
            taken.update(
                raw["id"]
                for raw in unparsed
                if isinstance(raw, dict) and isinstance(raw.get("id"), str)
            )

            created: list[ActivityRecord] = []
            for entry in inputs:
                record_id = self._id_factory()
                while record_id in taken:
                    record_id = self._id_factory()
                taken.add(record_id)

                asset, payload = self._build_asset(record_id, entry)
                await self._storage.write(
                    self.asset_key(user_id, asset), payload, GZIP_CONTENT_TYPE
                )

                created.append(
                    ActivityRecord(
                        id=record_id,
                        name=entry.name,
                        sport=entry.sport,
                        file_name=entry.file_name,
                        distance_km=polyline_distance_km(entry.points),
                        created_at=self._clock_ms(),
                        encoded_points=encode_polyline(entry.points),
                        asset=asset,
                    )
                )

            await self._write_records(user_id, created + existing, unparsed)

        logger.info("Stored %d activities for user %s", len(created), user_id)
        return created

    async def delete(self, user_id: str, activity_id: str) -> bool:
        """Remove a record and its asset.

        Returns:
            True if a record with ``activity_id`` existed.
        """
        async with self._locks(user_id):
            records, unparsed = await self._read_catalog(user_id)
            removed = next((r for r in records if r.id == activity_id), None)
            if removed is None:
                return False

            await self._write_records(
                user_id, [r for r in records if r.id != activity_id], unparsed
            )

        try:
            await self._storage.delete(self.asset_key(user_id, removed.asset))
        except NotFoundError:
            logger.debug("Asset for activity %s was already gone", activity_id)

        logger.info("Deleted activity %s for user %s", activity_id, user_id)
        return True

    async def read_asset(self, user_id: str, activity_id: str) -> tuple[AssetKind, bytes]:
        """Return ``(kind, decompressed payload)`` of a record's geometry asset.

        Raises:
            NotFoundError: If the record or its asset does not exist.
        """
        records = await self._read_records(user_id)
        record = next((r for r in records if r.id == activity_id), None)
        if record is None:
            raise NotFoundError(f"{self.user_prefix(user_id)}#{activity_id}")
        data = await self._storage.read(self.asset_key(user_id, record.asset))
        return record.asset.kind, decompress(data)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _build_asset(record_id: str, entry: ActivityInput) -> tuple[AssetRef, bytes]:
        if entry.raw_gpx:
            asset = AssetRef(kind=AssetKind.GPX, path=f"gpx/{record_id}.gpx.gz")
            return asset, compress_text(entry.raw_gpx)

        document = entry.geojson or build_geojson(entry.name, entry.points)
        asset = AssetRef(kind=AssetKind.GEOJSON, path=f"geojson/{record_id}.geojson.gz")
        return asset, compress_json(document)

    async def _read_records(self, user_id: str) -> list[ActivityRecord]:
        records, _ = await self._read_catalog(user_id)
        return records

    async def _read_catalog(self, user_id: str) -> tuple[list[ActivityRecord], list[Any]]:
        """Return ``(records, unparsed)`` for a user's catalog.

        Entries that fail validation are left out of ``records`` but kept
        verbatim in ``unparsed`` so a rewrite never drops them.
        """
        key = self.metadata_key(user_id)
        try:
            content = await self._storage.read_text(key)
        except NotFoundError:
            return [], []
        except UnicodeDecodeError as exc:
            raise ParseError(f"Malformed activity catalog {key}: {exc}") from exc

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Malformed activity catalog {key}: {exc}") from exc
        if not isinstance(parsed, list):
            raise ParseError(f"Activity catalog {key} is not a JSON array")

        records: list[ActivityRecord] = []
        unparsed: list[Any] = []
        for position, raw in enumerate(parsed):
            try:
                records.append(ActivityRecord.model_validate(raw))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed record #%d in %s: %s",
                    position,
                    key,
                    exc.errors()[0].get("msg") if exc.errors() else exc,
                )
                unparsed.append(raw)
        return records, unparsed

    async def _write_records(
        self, user_id: str, records: list[ActivityRecord], unparsed: list[Any]
    ) -> None:
        document = json.dumps([r.to_storage() for r in records] + unparsed, indent=2)
        await self._storage.write(
            self.metadata_key(user_id), f"{document}\n", "application/json"
        )
