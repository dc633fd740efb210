"""Tests for the bounded recent-id set."""

from __future__ import annotations

import pytest

from gpxgrid.strava.dedup import MAX_TRACKED_ACTIVITY_IDS, RecentIdSet, activity_id


class TestActivityId:
    @pytest.mark.parametrize(
        ("payload", "expected"),
        [({"id": 42}, 42), ({"id": "42"}, 42), ({}, None), ({"id": None}, None), ({"id": "x"}, None)],
    )
    def test_extraction(self, payload: dict, expected: int | None) -> None:
        assert activity_id(payload) == expected


class TestRecentIdSet:
    def test_default_cap(self) -> None:
        assert RecentIdSet().cap == MAX_TRACKED_ACTIVITY_IDS == 500

    def test_membership_and_order(self) -> None:
        seen = RecentIdSet([3, 2, 1])
        assert 2 in seen
        assert 4 not in seen
        assert list(seen) == [3, 2, 1]

    def test_add_recent_prepends_in_given_order(self) -> None:
        seen = RecentIdSet([3, 2, 1])
        seen.add_recent([5, 4])
        assert seen.to_list() == [5, 4, 3, 2, 1]

    def test_re_adding_moves_to_front_without_duplicates(self) -> None:
        seen = RecentIdSet([3, 2, 1])
        seen.add_recent([1, 1])
        assert seen.to_list() == [1, 3, 2]

    def test_evicts_oldest_past_cap(self) -> None:
        seen = RecentIdSet([3, 2, 1], cap=4)
        seen.add_recent([5, 4])
        assert seen.to_list() == [5, 4, 3, 2]
        assert 1 not in seen

    def test_initial_ids_truncated_to_cap(self) -> None:
        seen = RecentIdSet(range(600))
        assert len(seen) == 500
        assert 499 in seen
        assert 500 not in seen

    def test_full_set_stays_at_cap(self) -> None:
        seen = RecentIdSet(range(1000, 1500))
        seen.add_recent([1, 2])
        ids = seen.to_list()
        assert len(ids) == 500
        assert ids[:3] == [1, 2, 1000]
        assert 1499 not in seen and 1498 not in seen

    def test_invalid_cap(self) -> None:
        with pytest.raises(ValueError):
            RecentIdSet(cap=0)
