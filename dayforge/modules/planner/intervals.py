"""Interval arithmetic for free-time computation."""

from __future__ import annotations

import datetime as dt
from typing import Iterable, NamedTuple


class Interval(NamedTuple):
    """Half-open time span ``[start, end)``."""

    start: dt.datetime
    end: dt.datetime

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def padded(self, buffer: dt.timedelta) -> "Interval":
        return Interval(self.start - buffer, self.end + buffer)


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """Merge overlapping or touching intervals into a sorted disjoint list."""
    ordered = sorted(intervals)
    if not ordered:
        return []
    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            merged[-1] = Interval(last.start, max(last.end, current.end))
        else:
            merged.append(current)
    return merged


def compute_gaps(
    day_start: dt.datetime,
    day_end: dt.datetime,
    occupied: Iterable[Interval],
    buffer_minutes: int,
) -> list[Interval]:
    """Free gaps inside ``[day_start, day_end)`` around already-padded blocks.

    Gaps shorter than the buffer are dropped. Blocks reaching outside the
    window are clipped to it.
    """
    minimum = dt.timedelta(minutes=buffer_minutes)
    gaps: list[Interval] = []
    cursor = day_start
    for block in merge_intervals(occupied):
        if block.end <= cursor:
            continue
        if block.start >= day_end:
            break
        if block.start > cursor and block.start - cursor >= minimum:
            gaps.append(Interval(cursor, block.start))
        cursor = max(cursor, block.end)
        if cursor >= day_end:
            break
    if cursor < day_end and day_end - cursor >= minimum:
        gaps.append(Interval(cursor, day_end))
    return gaps
