"""Task storage and priority maintenance."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dayforge.config import get_settings
from dayforge.database import session_scope
from dayforge.logging_config import get_logger
from dayforge.modules.tasks.models import Task, TaskCreate, TaskRecord, TaskUpdate
from dayforge.modules.tasks.prioritizer import calculate_priority

logger = get_logger(__name__)

PRIORITY_FIELDS = frozenset({"due_date", "estimated_time", "importance", "category"})


def score_record(row: TaskRecord, now: Optional[dt.datetime] = None) -> float:
    return calculate_priority(
        due_date=row.due_date,
        estimated_time=row.estimated_time,
        importance=row.importance,
        category=row.category,
        now=now,
    )


class TaskService:
    """CRUD for tasks, keeping ``priority_score`` current."""

    def __init__(self, session: Optional[AsyncSession] = None) -> None:
        self._session = session
        self._settings = get_settings()

    async def create_task(self, user_id: str, data: TaskCreate) -> Task:
        async with session_scope(self._session) as session:
            row = TaskRecord(user_id=user_id, **data.model_dump())
            row.priority_score = score_record(row)
            session.add(row)
            await session.flush()
            task = Task.model_validate(row)
        logger.info("task_created", user_id=user_id, task_id=task.id, priority=round(task.priority_score, 2))
        return task

    async def get_task(self, user_id: str, task_id: str) -> Optional[Task]:
        async with session_scope(self._session) as session:
            row = await self._load(session, user_id, task_id)
            return Task.model_validate(row) if row else None

    async def update_task(self, user_id: str, task_id: str, changes: TaskUpdate) -> Optional[Task]:
        """Apply a partial update; rescore when a scoring input changed."""
        fields = changes.model_dump(exclude_unset=True)
        if fields.get("title", "") is None:
            fields.pop("title")
        if fields.get("importance", 0) is None:
            fields.pop("importance")

        async with session_scope(self._session) as session:
            row = await self._load(session, user_id, task_id)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            if PRIORITY_FIELDS & fields.keys():
                row.priority_score = score_record(row)
            await session.flush()
            task = Task.model_validate(row)
        logger.info("task_updated", user_id=user_id, task_id=task_id, fields=sorted(fields))
        return task

    async def complete_task(self, user_id: str, task_id: str) -> Optional[Task]:
        async with session_scope(self._session) as session:
            row = await self._load(session, user_id, task_id)
            if row is None:
                return None
            row.is_completed = True
            row.completed_at = dt.datetime.now()
            await session.flush()
            task = Task.model_validate(row)
        logger.info("task_completed", user_id=user_id, task_id=task_id)
        return task

    async def delete_task(self, user_id: str, task_id: str) -> bool:
        async with session_scope(self._session) as session:
            row = await self._load(session, user_id, task_id)
            if row is None:
                return False
            await session.delete(row)
            await session.flush()
        logger.info("task_deleted", user_id=user_id, task_id=task_id)
        return True

    async def list_tasks(self, user_id: str, include_completed: bool = False) -> list[Task]:
        """Tasks ordered open-first, then by priority and due date."""
        await self.refresh_stale_priorities(user_id)
        stmt = select(TaskRecord).where(TaskRecord.user_id == user_id)
        if not include_completed:
            stmt = stmt.where(TaskRecord.is_completed.is_(False))
        stmt = stmt.order_by(
            TaskRecord.is_completed,
            TaskRecord.priority_score.desc(),
            TaskRecord.due_date.is_(None),
            TaskRecord.due_date,
        )
        async with session_scope(self._session) as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [Task.model_validate(row) for row in rows]

    async def pending_tasks(self, user_id: str, refresh: bool = False) -> list[Task]:
        """Incomplete tasks by priority (desc) then due date (asc, undated last)."""
        if refresh:
            await self.refresh_stale_priorities(user_id)
        stmt = (
            select(TaskRecord)
            .where(TaskRecord.user_id == user_id, TaskRecord.is_completed.is_(False))
            .order_by(
                TaskRecord.priority_score.desc(),
                TaskRecord.due_date.is_(None),
                TaskRecord.due_date,
            )
        )
        async with session_scope(self._session) as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [Task.model_validate(row) for row in rows]

    async def refresh_stale_priorities(
        self,
        user_id: Optional[str] = None,
        now: Optional[dt.datetime] = None,
    ) -> int:
        """Rescore open, dated tasks whose stored score drifted past the threshold.

        Scores of dated tasks drift as the due date approaches. Pass no
        ``user_id`` to sweep every user.
        """
        threshold = self._settings.priority_stale_threshold
        stmt = select(TaskRecord).where(
            TaskRecord.is_completed.is_(False),
            TaskRecord.due_date.is_not(None),
        )
        if user_id is not None:
            stmt = stmt.where(TaskRecord.user_id == user_id)

        updated = 0
        async with session_scope(self._session) as session:
            for row in (await session.execute(stmt)).scalars().all():
                fresh = score_record(row, now)
                if abs((row.priority_score or 0.0) - fresh) > threshold:
                    row.priority_score = fresh
                    updated += 1
            await session.flush()

        if updated:
            logger.info("task_priorities_refreshed", user_id=user_id or "*", updated=updated)
        return updated

    @staticmethod
    async def _load(session: AsyncSession, user_id: str, task_id: str) -> Optional[TaskRecord]:
        row = await session.get(TaskRecord, task_id)
        if row is None or row.user_id != user_id:
            return None
        return row
