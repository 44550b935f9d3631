"""Tests for interval merging and gap computation."""

from __future__ import annotations

import datetime as dt

from dayforge.modules.planner.intervals import Interval, compute_gaps, merge_intervals

from conftest import at

BASE = dt.datetime(2026, 3, 10)


def m(minutes: int) -> dt.datetime:
    return BASE + dt.timedelta(minutes=minutes)


class TestMergeIntervals:
    """Tests for merge_intervals."""

    def test_merges_overlapping_and_keeps_disjoint(self) -> None:
        merged = merge_intervals([Interval(m(1), m(3)), Interval(m(2), m(5)), Interval(m(10), m(12))])
        assert merged == [Interval(m(1), m(5)), Interval(m(10), m(12))]

    def test_empty_input(self) -> None:
        assert merge_intervals([]) == []

    def test_unordered_input_is_sorted(self) -> None:
        merged = merge_intervals([Interval(m(10), m(12)), Interval(m(1), m(3))])
        assert merged == [Interval(m(1), m(3)), Interval(m(10), m(12))]

    def test_touching_intervals_merge(self) -> None:
        """start <= end of the previous block counts as overlapping."""
        assert merge_intervals([Interval(m(0), m(5)), Interval(m(5), m(8))]) == [Interval(m(0), m(8))]

    def test_contained_interval_is_absorbed(self) -> None:
        assert merge_intervals([Interval(m(0), m(60)), Interval(m(10), m(20))]) == [Interval(m(0), m(60))]


class TestComputeGaps:
    """Tests for compute_gaps."""

    def test_lunch_meeting_splits_day(self) -> None:
        buffer = dt.timedelta(minutes=15)
        occupied = [Interval(at(12), at(13)).padded(buffer)]
        gaps = compute_gaps(at(9), at(17), occupied, 15)
        assert gaps == [Interval(at(9), at(11, 45)), Interval(at(13, 15), at(17))]

    def test_empty_day_is_one_gap(self) -> None:
        assert compute_gaps(at(9), at(17), [], 15) == [Interval(at(9), at(17))]

    def test_gap_shorter_than_buffer_is_dropped(self) -> None:
        occupied = [Interval(at(9), at(10)), Interval(at(10, 10), at(17))]
        assert compute_gaps(at(9), at(17), occupied, 15) == []

    def test_gap_equal_to_buffer_is_kept(self) -> None:
        occupied = [Interval(at(9), at(10)), Interval(at(10, 15), at(17))]
        assert compute_gaps(at(9), at(17), occupied, 15) == [Interval(at(10), at(10, 15))]

    def test_blocks_outside_window_are_clipped(self) -> None:
        occupied = [Interval(at(7), at(9, 30)), Interval(at(16, 30), at(19))]
        assert compute_gaps(at(9), at(17), occupied, 15) == [Interval(at(9, 30), at(16, 30))]

    def test_block_after_window_does_not_extend_gap(self) -> None:
        occupied = [Interval(at(18), at(19))]
        assert compute_gaps(at(9), at(17), occupied, 15) == [Interval(at(9), at(17))]

    def test_fully_occupied_day(self) -> None:
        assert compute_gaps(at(9), at(17), [Interval(at(8), at(18))], 15) == []

    def test_degenerate_window(self) -> None:
        assert compute_gaps(at(17), at(9), [], 15) == []
