"""Filesystem-backed storage driver."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from gpxgrid.errors import NotFoundError
from gpxgrid.storage.base import StorageDriver, split_key_segments

logger = logging.getLogger("gpxgrid.storage.local")


class LocalStorageDriver(StorageDriver):
    """Store blobs as plain files below a fixed root directory.

    Blocking filesystem calls run in the default thread pool so callers on
    the event loop are never blocked.
    """

    NAME = "local"

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        """Resolve a storage key to its path below the root."""
        return self._root.joinpath(*split_key_segments(key))

    async def read(self, key: str) -> bytes:
        path = self.path_for(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            raise NotFoundError(key) from exc

    async def write(
        self, key: str, data: bytes | str, content_type: str | None = None
    ) -> None:
        path = self.path_for(key)
        payload = self._to_bytes(data)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload)

        await asyncio.to_thread(_write)
        logger.debug("Wrote %d bytes to %s", len(payload), path)

    async def delete(self, key: str) -> None:
        path = self.path_for(key)
        await asyncio.to_thread(path.unlink, missing_ok=True)
        logger.debug("Deleted %s", path)
