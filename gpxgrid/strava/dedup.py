"""Deduplication of imported Strava activities.

Strava activity ids that were already imported are remembered in a bounded,
most-recent-first list stored in the user's SyncState.  It is the only
thing that keeps a repeated sync from importing the same activity twice;
the time cursor merely narrows what is fetched.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator

logger = logging.getLogger("gpxgrid.strava.dedup")

MAX_TRACKED_ACTIVITY_IDS = 500


def activity_id(activity: dict[str, Any]) -> int | None:
    """Return the numeric Strava id of an activity payload, or None."""
    try:
        return int(activity["id"])
    except (KeyError, TypeError, ValueError):
        return None


class RecentIdSet:
    """Bounded, order-preserving set of ids, most recent first.

    Usage::

        seen = RecentIdSet(state.imported_activity_ids)
        if 42 not in seen:
            ...
        seen.add_recent([42, 43])
        state.imported_activity_ids = seen.to_list()
    """

    def __init__(self, ids: Iterable[int] = (), cap: int = MAX_TRACKED_ACTIVITY_IDS) -> None:
        if cap < 1:
            raise ValueError("cap must be positive")
        self._cap = cap
        self._ids: list[int] = []
        self._members: set[int] = set()
        self._extend_oldest(ids)

    def _extend_oldest(self, ids: Iterable[int]) -> None:
        for value in ids:
            if len(self._ids) >= self._cap:
                break
            if value not in self._members:
                self._ids.append(value)
                self._members.add(value)

    def __contains__(self, value: object) -> bool:
        return value in self._members

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[int]:
        return iter(self._ids)

    @property
    def cap(self) -> int:
        return self._cap

    def add_recent(self, ids: Iterable[int]) -> None:
        """Prepend ``ids`` (kept in the given order), evicting the oldest past the cap."""
        fresh = list(dict.fromkeys(ids))
        fresh_members = set(fresh)
        older = [value for value in self._ids if value not in fresh_members]
        self._ids = []
        self._members = set()
        self._extend_oldest(fresh + older)
        evicted = len(fresh) + len(older) - len(self._ids)
        if evicted > 0:
            logger.debug("Evicted %d oldest tracked activity ids", evicted)

    def to_list(self) -> list[int]:
        return list(self._ids)
