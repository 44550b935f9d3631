"""Day planner. Proposes a non-overlapping schedule for one calendar day.

``plan_day`` is pure: it works on events and tasks the caller already loaded
and never touches storage. ``PlannerService`` does the loading for a user and
owns the separate accept step that persists the net-new blocks.
"""

from __future__ import annotations

import datetime as dt
from typing import Iterable, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from dayforge.config import get_settings
from dayforge.database import session_scope
from dayforge.logging_config import get_logger
from dayforge.modules.calendar.models import CalendarEvent, EventCreate, EventSource, FLEXIBLE_COLOR
from dayforge.modules.calendar.service import CalendarService
from dayforge.modules.planner.intervals import Interval, compute_gaps
from dayforge.modules.planner.models import DayPlan, ProposedEvent
from dayforge.modules.planner.packer import (
    MAX_CHUNK_MINUTES,
    MIN_CHUNK_MINUTES,
    PackableTask,
    order_tasks,
    pack_tasks,
)
from dayforge.modules.tasks.service import TaskService
from dayforge.modules.users.models import UserPrefs
from dayforge.modules.users.service import UserService

logger = get_logger(__name__)


def _as_proposed(event: CalendarEvent) -> ProposedEvent:
    return ProposedEvent(
        id=event.id,
        title=event.title,
        start_time=event.start_time,
        end_time=event.end_time,
        is_fixed=event.is_fixed,
        color=event.color,
        source=event.source,
        source_ref=event.source_ref,
    )


def plan_day(
    target_date: dt.date,
    fixed_events: Iterable[CalendarEvent],
    tasks: Iterable[PackableTask],
    prefs: UserPrefs,
    min_chunk: int = MIN_CHUNK_MINUTES,
    max_chunk: int = MAX_CHUNK_MINUTES,
) -> list[ProposedEvent]:
    """Existing events plus greedily packed task blocks, sorted by start time.

    Every event handed in (travel blocks included) is treated as occupied and
    padded by the buffer on both sides. A degenerate working-hours window just
    yields no gaps.
    """
    if isinstance(target_date, dt.datetime):
        target_date = target_date.date()
    buffer_minutes = prefs.effective_buffer
    buffer = dt.timedelta(minutes=buffer_minutes)
    day_start = dt.datetime.combine(target_date, dt.time(hour=prefs.work_hours_start))
    day_end = dt.datetime.combine(target_date, dt.time(hour=prefs.work_hours_end))

    existing = sorted(fixed_events, key=lambda e: e.start_time)
    occupied = [Interval(e.start_time, e.end_time).padded(buffer) for e in existing]
    gaps = compute_gaps(day_start, day_end, occupied, buffer_minutes)

    ordered = order_tasks(tasks, min_chunk)
    placed = pack_tasks(ordered, gaps, buffer_minutes, min_chunk, max_chunk)

    result = [_as_proposed(e) for e in existing] + placed
    result.sort(key=lambda entry: entry.start_time)
    logger.debug(
        "day_planned",
        date=target_date.isoformat(),
        gaps=len(gaps),
        tasks=len(ordered),
        blocks=len(placed),
    )
    return result


class PlannerService:
    """Loads a user's day, proposes a plan, and persists accepted blocks."""

    def __init__(
        self,
        calendar: CalendarService,
        tasks: Optional[TaskService] = None,
        users: Optional[UserService] = None,
        session: Optional[AsyncSession] = None,
    ) -> None:
        self._calendar = calendar
        self._tasks = tasks or TaskService(session=session)
        self._users = users or UserService(session=session)
        self._session = session
        self._settings = get_settings()

    async def plan_for_user(self, user_id: str, target_date: dt.date) -> DayPlan:
        """Propose a schedule for ``target_date`` from the user's stored data."""
        day_start = dt.datetime.combine(target_date, dt.time.min)
        day_end = day_start + dt.timedelta(days=1)

        events = await self._calendar.list_events(user_id, day_start, day_end, overlapping=True)
        pending = await self._tasks.pending_tasks(user_id, refresh=True)
        prefs = await self._users.get_preferences(user_id)

        schedule = plan_day(
            target_date,
            events,
            pending,
            prefs,
            min_chunk=self._settings.min_chunk_minutes,
            max_chunk=self._settings.max_chunk_minutes,
        )
        plan = DayPlan(date=target_date, schedule=schedule)
        logger.info(
            "day_plan_proposed",
            user_id=user_id,
            date=target_date.isoformat(),
            existing=len(events),
            proposed=plan.proposed_count,
        )
        return plan

    async def accept_plan(self, user_id: str, proposed: Sequence[ProposedEvent]) -> list[CalendarEvent]:
        """Persist entries lacking an ``id`` as plan blocks, in one transaction."""
        new_blocks = [
            EventCreate(
                title=entry.title,
                start_time=entry.start_time,
                end_time=entry.end_time,
                is_fixed=False,
                color=FLEXIBLE_COLOR,
                source_ref=entry.task_id or entry.source_ref,
            )
            for entry in proposed
            if entry.is_proposed
        ]
        if not new_blocks:
            return []

        async with session_scope(self._session) as session:
            created = await self._calendar.create_events(
                user_id, new_blocks, source=EventSource.PLAN, session=session,
            )
        logger.info("day_plan_accepted", user_id=user_id, created=len(created))
        return created
