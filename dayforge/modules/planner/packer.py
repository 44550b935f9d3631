"""Greedy task packing into free gaps.

Tasks are visited strictly in priority order. Each task takes as much of the
current gap as it needs (never more than one sitting's worth per chunk) before
the cursor moves on; a gap whose usable remainder shrinks below the minimum is
never revisited. Whatever does not fit is dropped from the proposal.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol, Sequence

from dayforge.modules.calendar.models import FLEXIBLE_COLOR, EventSource
from dayforge.modules.planner.intervals import Interval
from dayforge.modules.planner.models import ProposedEvent

MIN_CHUNK_MINUTES = 15
MAX_CHUNK_MINUTES = 120


class PackableTask(Protocol):
    id: str
    title: str
    estimated_time: Optional[int]
    priority_score: float
    due_date: Optional[dt.datetime]


@dataclass
class GapCursor:
    """Position inside a list of gaps: which gap, and where its free part starts."""

    gaps: Sequence[Interval]
    index: int = 0
    start: Optional[dt.datetime] = field(default=None)

    def __post_init__(self) -> None:
        if self.start is None and self.gaps:
            self.start = self.gaps[0].start

    @property
    def exhausted(self) -> bool:
        return self.index >= len(self.gaps)

    @property
    def gap_end(self) -> dt.datetime:
        return self.gaps[self.index].end

    def available_minutes(self) -> int:
        if self.exhausted:
            return 0
        return max(0, int((self.gap_end - self.start).total_seconds() // 60))

    def advance(self) -> None:
        self.index += 1
        self.start = None if self.exhausted else self.gaps[self.index].start

    def take(self, minutes: int, buffer_minutes: int) -> Interval:
        """Claim ``minutes`` at the cursor and step past them plus one buffer."""
        chunk = Interval(self.start, self.start + dt.timedelta(minutes=minutes))
        self.start = chunk.end + dt.timedelta(minutes=buffer_minutes)
        if self.gap_end - self.start < dt.timedelta(minutes=buffer_minutes):
            self.advance()
        return chunk


def _due_sort_key(task: PackableTask) -> tuple[int, dt.datetime]:
    if task.due_date is None:
        return (1, dt.datetime.max)
    return (0, task.due_date.replace(tzinfo=None))


def order_tasks(
    tasks: Iterable[PackableTask],
    min_chunk: int = MIN_CHUNK_MINUTES,
) -> list[PackableTask]:
    """Schedulable tasks by priority (desc), then due date (asc, undated last)."""
    usable = [t for t in tasks if t.estimated_time and t.estimated_time >= min_chunk]
    usable.sort(key=_due_sort_key)
    usable.sort(key=lambda t: t.priority_score or 0.0, reverse=True)
    return usable


def pack_tasks(
    tasks: Sequence[PackableTask],
    gaps: Sequence[Interval],
    buffer_minutes: int,
    min_chunk: int = MIN_CHUNK_MINUTES,
    max_chunk: int = MAX_CHUNK_MINUTES,
) -> list[ProposedEvent]:
    """Place ``tasks`` (already in visiting order) into ``gaps``.

    Returns the new task blocks in placement order.
    """
    cursor = GapCursor(gaps)
    blocks: list[ProposedEvent] = []

    for task in tasks:
        remaining = task.estimated_time or 0
        if remaining < min_chunk:
            continue
        while remaining > 0 and not cursor.exhausted:
            available = cursor.available_minutes()
            if available < min_chunk:
                cursor.advance()
                continue
            minutes = min(remaining, available, max_chunk)
            chunk = cursor.take(minutes, buffer_minutes)
            blocks.append(
                ProposedEvent(
                    title=task.title,
                    start_time=chunk.start,
                    end_time=chunk.end,
                    is_fixed=False,
                    color=FLEXIBLE_COLOR,
                    source=EventSource.PLAN,
                    source_ref=task.id,
                    task_id=task.id,
                )
            )
            remaining -= minutes
        if cursor.exhausted:
            break

    return blocks
