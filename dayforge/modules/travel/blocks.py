"""Travel blocks are derived calendar events for the commute before a primary event.

A travel block is keyed by ``(user_id, source='travel', source_ref=<primary id>)``.
It always ends exactly at its primary event's start and lasts as long as the
oracle says the trip takes. Writes are create-if-absent / update-if-present,
so syncing the same primary twice never yields a second block.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from dayforge.config import get_settings
from dayforge.logging_config import get_logger
from dayforge.modules.calendar.models import TRAVEL_COLOR, CalendarEventRecord, EventSource
from dayforge.modules.travel.models import TravelMode, TravelResult
from dayforge.modules.travel.service import TravelService, normalize_travel_mode, travel_block_icon
from dayforge.modules.users.service import UserService

logger = get_logger(__name__)


def travel_block_title(primary_title: str, mode: TravelMode | str, duration_text: str) -> str:
    return f"{travel_block_icon(mode)} Travel to {primary_title} — {duration_text}"


class TravelBlockSynchronizer:
    """Keeps each primary event's companion travel block consistent with it."""

    def __init__(
        self,
        travel: TravelService,
        users: Optional[UserService] = None,
        same_day_origin: Optional[bool] = None,
    ) -> None:
        self._travel = travel
        self._users = users or UserService()
        if same_day_origin is None:
            same_day_origin = get_settings().travel_origin_same_day
        self._same_day_origin = same_day_origin

    # ── Lookups ──────────────────────────────────────────────────────

    @staticmethod
    async def find_travel_blocks(
        session: AsyncSession, user_id: str, primary_event_id: str,
    ) -> list[CalendarEventRecord]:
        stmt = (
            select(CalendarEventRecord)
            .where(
                CalendarEventRecord.user_id == user_id,
                CalendarEventRecord.source == EventSource.TRAVEL.value,
                CalendarEventRecord.source_ref == primary_event_id,
            )
            .order_by(CalendarEventRecord.created_at, CalendarEventRecord.id)
        )
        return list((await session.execute(stmt)).scalars().all())

    async def resolve_origin(self, session: AsyncSession, primary: CalendarEventRecord) -> Optional[str]:
        """Where the user is coming from before ``primary``.

        That is the location of the latest earlier non-travel event ending at
        or before ``primary`` starts, falling back to the home address.
        """
        stmt = (
            select(CalendarEventRecord.location)
            .where(
                CalendarEventRecord.user_id == primary.user_id,
                CalendarEventRecord.id != primary.id,
                CalendarEventRecord.source != EventSource.TRAVEL.value,
                CalendarEventRecord.end_time <= primary.start_time,
                CalendarEventRecord.location.is_not(None),
                CalendarEventRecord.location != "",
            )
            .order_by(CalendarEventRecord.end_time.desc())
            .limit(1)
        )
        if self._same_day_origin:
            midnight = dt.datetime.combine(primary.start_time.date(), dt.time.min)
            stmt = stmt.where(CalendarEventRecord.end_time >= midnight)

        previous = (await session.execute(stmt)).scalar_one_or_none()
        if previous:
            return previous
        return await self._users.get_home_address(primary.user_id, session=session)

    # ── Writes ───────────────────────────────────────────────────────

    async def upsert_travel_block(
        self,
        session: AsyncSession,
        user_id: str,
        primary_event_id: str,
        primary_title: str,
        primary_start: dt.datetime,
        origin: str,
        destination: str,
        mode: TravelMode | str,
    ) -> Optional[TravelResult]:
        """Create or refresh the travel block for a primary event.

        Returns the oracle result, or ``None`` (writing nothing) if the travel
        time could not be computed.
        """
        canonical = normalize_travel_mode(mode)
        result = await self._travel.calculate_travel_time(origin, destination, canonical)
        if result is None:
            return None

        title = travel_block_title(primary_title, canonical, result.duration_text)
        start = primary_start - dt.timedelta(minutes=result.duration_minutes)
        description = f"{origin} → {destination}"

        # Re-read right before writing; a concurrent request may have created one.
        blocks = await self.find_travel_blocks(session, user_id, primary_event_id)
        if blocks:
            block = blocks[0]
            block.title = title
            block.description = description
            block.start_time = start
            block.end_time = primary_start
            block.travel_time = result.duration_minutes
            for duplicate in blocks[1:]:
                await session.delete(duplicate)
            logger.info(
                "travel_block_updated",
                user_id=user_id,
                event_id=primary_event_id,
                block_id=block.id,
                minutes=result.duration_minutes,
                duplicates_removed=len(blocks) - 1,
            )
        else:
            block = CalendarEventRecord(
                user_id=user_id,
                title=title,
                description=description,
                start_time=start,
                end_time=primary_start,
                is_fixed=True,
                color=TRAVEL_COLOR,
                travel_time=result.duration_minutes,
                source=EventSource.TRAVEL.value,
                source_ref=primary_event_id,
            )
            session.add(block)
            logger.info(
                "travel_block_created",
                user_id=user_id,
                event_id=primary_event_id,
                minutes=result.duration_minutes,
            )
        await session.flush()
        return result

    async def delete_travel_block_for_event(
        self, session: AsyncSession, user_id: str, primary_event_id: str,
    ) -> int:
        """Remove the travel block of a primary event. No-op if there is none."""
        result = await session.execute(
            delete(CalendarEventRecord).where(
                CalendarEventRecord.user_id == user_id,
                CalendarEventRecord.source == EventSource.TRAVEL.value,
                CalendarEventRecord.source_ref == primary_event_id,
            )
        )
        removed = result.rowcount or 0
        if removed:
            logger.info("travel_block_deleted", user_id=user_id, event_id=primary_event_id, count=removed)
        return removed

    async def sync_event(self, session: AsyncSession, primary: CalendarEventRecord) -> Optional[TravelResult]:
        """Bring the travel block of ``primary`` in line with its current state.

        Sets ``primary.travel_time`` to the computed minutes, or to ``None``
        when no block can exist (no location, no origin, or no oracle answer).
        Travel blocks themselves are ignored.
        """
        if primary.source == EventSource.TRAVEL.value:
            return None

        result: Optional[TravelResult] = None
        destination = (primary.location or "").strip()
        origin = await self.resolve_origin(session, primary) if destination else None
        if destination and origin:
            prefs = await self._users.get_preferences(primary.user_id, session=session)
            result = await self.upsert_travel_block(
                session,
                primary.user_id,
                primary.id,
                primary.title,
                primary.start_time,
                origin,
                destination,
                prefs.travel_mode,
            )

        if result is None:
            await self.delete_travel_block_for_event(session, primary.user_id, primary.id)
            primary.travel_time = None
            logger.debug(
                "travel_block_absent",
                event_id=primary.id,
                has_destination=bool(destination),
                has_origin=bool(origin),
            )
        else:
            primary.travel_time = result.duration_minutes
        await session.flush()
        return result
