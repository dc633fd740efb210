"""Storage driver interface and key handling shared by every backend.

A storage key is a POSIX-style relative path.  Leading separators are
stripped and empty segments dropped, so ``"/a//b.json"`` and ``"a/b.json"``
address the same blob.  Segments equal to ``.`` or ``..`` are rejected so a
key can never resolve outside the storage root (or outside the bucket
prefix).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from gpxgrid.errors import InvalidKeyError

logger = logging.getLogger("gpxgrid.storage")

_FORBIDDEN_SEGMENTS = frozenset({".", ".."})


def split_key_segments(key: str) -> list[str]:
    """Split a storage key into validated, non-empty path segments.

    Args:
        key: Raw storage key, e.g. ``"activities/u1/activities.json"``.

    Returns:
        List of segments.

    Raises:
        InvalidKeyError: If the key has no segments or contains ``.``/``..``.
    """
    segments = [segment for segment in key.lstrip("/").split("/") if segment]
    if not segments:
        raise InvalidKeyError(f"Storage key is empty: {key!r}")
    for segment in segments:
        if segment in _FORBIDDEN_SEGMENTS:
            raise InvalidKeyError(f"Storage key may not contain {segment!r}: {key!r}")
    return segments


def normalize_key(key: str) -> str:
    """Return the canonical ``a/b/c`` form of a storage key."""
    return "/".join(split_key_segments(key))


def parent_key(key: str) -> str:
    """Return the parent of a key, or ``""`` for a top-level key."""
    segments = split_key_segments(key)
    return "/".join(segments[:-1])


class StorageDriver(ABC):
    """Abstract keyed blob store.

    Implementations:
        - LocalStorageDriver  — files under a root directory
        - BucketStorageDriver — S3-compatible object storage, SigV4-signed
    """

    #: Short name reported by ``/health`` and in logs.
    NAME: str = "unknown"

    @abstractmethod
    async def read(self, key: str) -> bytes:
        """Return the full content stored under ``key``.

        Raises:
            NotFoundError: If nothing is stored under ``key``.
        """

    @abstractmethod
    async def write(
        self, key: str, data: bytes | str, content_type: str | None = None
    ) -> None:
        """Create or replace the blob at ``key``.

        ``str`` data is stored UTF-8 encoded.  Any implied parent container
        is created as needed.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete the blob at ``key``.  Deleting a missing key succeeds."""

    async def read_text(self, key: str) -> str:
        """Read a blob and decode it as UTF-8."""
        return (await self.read(key)).decode("utf-8")

    @staticmethod
    def _to_bytes(data: bytes | str) -> bytes:
        return data.encode("utf-8") if isinstance(data, str) else data
