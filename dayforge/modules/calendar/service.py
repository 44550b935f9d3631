"""Calendar service, the single write path for calendar events.

Every create, update and delete of a primary event goes through here, and
each one finishes by running the travel-block synchronizer inside the same
session. No other code writes calendar rows, so derived travel blocks cannot
drift from the events they describe.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dayforge.database import session_scope
from dayforge.logging_config import get_logger
from dayforge.modules.calendar.models import (
    FIXED_COLOR,
    FLEXIBLE_COLOR,
    CalendarEvent,
    CalendarEventRecord,
    EventCreate,
    EventSource,
    EventUpdate,
)
from dayforge.modules.travel.blocks import TravelBlockSynchronizer

logger = get_logger(__name__)

# Changes to any of these move or rename the commute in front of the event.
TRAVEL_RELEVANT_FIELDS = frozenset({"start_time", "end_time", "location", "title"})
_REQUIRED_FIELDS = frozenset({"title", "start_time", "end_time", "is_fixed", "color"})


class CalendarService:
    """Event queries and commands for one store."""

    def __init__(
        self,
        synchronizer: TravelBlockSynchronizer,
        session: Optional[AsyncSession] = None,
    ) -> None:
        self._sync = synchronizer
        self._session = session

    def _scope(self, session: Optional[AsyncSession] = None):
        return session_scope(session or self._session)

    # ── Queries ──────────────────────────────────────────────────────

    async def list_events(
        self,
        user_id: str,
        start: dt.datetime,
        end: dt.datetime,
        overlapping: bool = False,
    ) -> list[CalendarEvent]:
        """Events starting within ``[start, end]``, or touching ``[start, end)`` if ``overlapping``."""
        stmt = select(CalendarEventRecord).where(CalendarEventRecord.user_id == user_id)
        if overlapping:
            stmt = stmt.where(
                CalendarEventRecord.start_time < end,
                CalendarEventRecord.end_time > start,
            )
        else:
            stmt = stmt.where(
                CalendarEventRecord.start_time >= start,
                CalendarEventRecord.start_time <= end,
            )
        stmt = stmt.order_by(CalendarEventRecord.start_time)

        async with self._scope() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [CalendarEvent.model_validate(row) for row in rows]

    async def get_event(self, user_id: str, event_id: str) -> Optional[CalendarEvent]:
        async with self._scope() as session:
            row = await self._load(session, user_id, event_id)
        return CalendarEvent.model_validate(row) if row else None

    async def get_travel_block(self, user_id: str, event_id: str) -> Optional[CalendarEvent]:
        """The travel block serving ``event_id``, if one exists."""
        async with self._scope() as session:
            blocks = await self._sync.find_travel_blocks(session, user_id, event_id)
        return CalendarEvent.model_validate(blocks[0]) if blocks else None

    @staticmethod
    async def _load(session: AsyncSession, user_id: str, event_id: str) -> Optional[CalendarEventRecord]:
        row = await session.get(CalendarEventRecord, event_id)
        if row is None or row.user_id != user_id:
            return None
        return row

    # ── Commands ─────────────────────────────────────────────────────

    async def create_event(
        self,
        user_id: str,
        data: EventCreate,
        source: EventSource = EventSource.MANUAL,
    ) -> CalendarEvent:
        """Create a primary event and its travel block when one can be computed."""
        created = await self.create_events(user_id, [data], source=source)
        return created[0]

    async def create_events(
        self,
        user_id: str,
        items: Sequence[EventCreate],
        source: EventSource = EventSource.MANUAL,
        session: Optional[AsyncSession] = None,
    ) -> list[CalendarEvent]:
        """Create several primary events in one transaction.

        Raises:
            ValueError: If ``source`` is ``travel``; travel blocks are derived only.
        """
        if source == EventSource.TRAVEL:
            raise ValueError("Travel blocks cannot be created directly")

        created: list[CalendarEvent] = []
        async with self._scope(session) as s:
            for item in items:
                row = CalendarEventRecord(
                    user_id=user_id,
                    title=item.title,
                    description=item.description,
                    location=item.location or None,
                    start_time=item.start_time,
                    end_time=item.end_time,
                    is_fixed=item.is_fixed,
                    color=item.color or (FIXED_COLOR if item.is_fixed else FLEXIBLE_COLOR),
                    source=source.value,
                    source_ref=item.source_ref,
                )
                s.add(row)
                await s.flush()
                await self._sync.sync_event(s, row)
                created.append(CalendarEvent.model_validate(row))
                logger.info(
                    "event_created",
                    user_id=user_id,
                    event_id=row.id,
                    source=source.value,
                    travel_minutes=row.travel_time,
                )
        return created

    async def update_event(
        self,
        user_id: str,
        event_id: str,
        changes: EventUpdate,
    ) -> Optional[CalendarEvent]:
        """Apply a partial update and resync the travel block if it moved.

        Returns ``None`` when the event does not exist.

        Raises:
            ValueError: If the event is a travel block, or the update would
                leave it ending at or before its start.
        """
        fields = changes.model_dump(exclude_unset=True)
        # Explicit nulls only make sense for the optional text fields.
        fields = {k: v for k, v in fields.items() if v is not None or k not in _REQUIRED_FIELDS}

        async with self._scope() as session:
            row = await self._load(session, user_id, event_id)
            if row is None:
                return None
            if row.source == EventSource.TRAVEL.value:
                raise ValueError("Cannot edit travel blocks directly")

            start = fields.get("start_time", row.start_time)
            end = fields.get("end_time", row.end_time)
            if end <= start:
                raise ValueError("end_time must be after start_time")

            if "location" in fields:
                fields["location"] = (fields["location"] or "").strip() or None
            changed = {k for k, v in fields.items() if getattr(row, k) != v}
            for key in changed:
                setattr(row, key, fields[key])
            await session.flush()

            if changed & TRAVEL_RELEVANT_FIELDS:
                await self._sync.sync_event(session, row)
            event = CalendarEvent.model_validate(row)

        logger.info("event_updated", user_id=user_id, event_id=event_id, fields=sorted(changed))
        return event

    async def delete_event(self, user_id: str, event_id: str) -> bool:
        """Delete an event. Deleting a primary also removes its travel block.

        Deleting a travel block directly clears the primary's cached travel time.
        """
        async with self._scope() as session:
            row = await self._load(session, user_id, event_id)
            if row is None:
                return False

            if row.source == EventSource.TRAVEL.value:
                primary = await self._load(session, user_id, row.source_ref) if row.source_ref else None
                if primary is not None:
                    primary.travel_time = None
            else:
                await self._sync.delete_travel_block_for_event(session, user_id, event_id)
            await session.delete(row)
            await session.flush()

        logger.info("event_deleted", user_id=user_id, event_id=event_id)
        return True

    async def resync_travel(self, user_id: str, event_id: str) -> Optional[CalendarEvent]:
        """Recompute the travel block for an event. Missing events are a no-op."""
        async with self._scope() as session:
            row = await self._load(session, user_id, event_id)
            if row is None:
                logger.debug("travel_resync_skipped", event_id=event_id, reason="not_found")
                return None
            await self._sync.sync_event(session, row)
            return CalendarEvent.model_validate(row)
