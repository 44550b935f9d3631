"""Tests for travel-block synchronization."""

from __future__ import annotations

import datetime as dt

import pytest
from sqlalchemy import select

from dayforge.modules.calendar.models import (
    TRAVEL_COLOR,
    CalendarEventRecord,
    EventCreate,
    EventSource,
    EventUpdate,
)
from dayforge.modules.travel.blocks import TravelBlockSynchronizer, travel_block_title
from dayforge.modules.travel.models import TravelMode
from dayforge.modules.users.service import UserService

from conftest import DAY, USER, at, travel_minutes


async def travel_rows(session, primary_id: str) -> list[CalendarEventRecord]:
    stmt = select(CalendarEventRecord).where(
        CalendarEventRecord.source == EventSource.TRAVEL.value,
        CalendarEventRecord.source_ref == primary_id,
    )
    return list((await session.execute(stmt)).scalars().all())


def meeting(title="Standup", location="Office", start=None, end=None) -> EventCreate:
    return EventCreate(
        title=title,
        location=location,
        start_time=start or at(10),
        end_time=end or at(11),
        is_fixed=True,
    )


class TestTravelBlockTitle:
    def test_format(self) -> None:
        assert travel_block_title("Dentist", "walk", "12 mins") == "🚶 Travel to Dentist — 12 mins"


class TestSyncEvent:
    """Tests for creating, moving and removing travel blocks."""

    @pytest.mark.asyncio
    async def test_creates_block_ending_at_event_start(self, orch, db_session) -> None:
        await orch.users.set_home_address(USER, "Home")
        event = await orch.calendar.create_event(USER, meeting())

        assert event.travel_time == 20
        [block] = await travel_rows(db_session, event.id)
        assert block.start_time == at(9, 40)
        assert block.end_time == at(10)
        assert block.title == "🚗 Travel to Standup — 20 mins"
        assert block.description == "Home → Office"
        assert block.is_fixed is True
        assert block.color == TRAVEL_COLOR
        assert block.travel_time == 20
        assert block.user_id == USER

    @pytest.mark.asyncio
    async def test_resync_is_idempotent(self, orch, db_session) -> None:
        await orch.users.set_home_address(USER, "Home")
        event = await orch.calendar.create_event(USER, meeting())
        [first] = await travel_rows(db_session, event.id)

        await orch.calendar.resync_travel(USER, event.id)
        await orch.calendar.resync_travel(USER, event.id)

        blocks = await travel_rows(db_session, event.id)
        assert [b.id for b in blocks] == [first.id]
        assert len(await orch.calendar.list_events(USER, at(0), at(23))) == 2

    @pytest.mark.asyncio
    async def test_location_change_updates_block_in_place(self, orch, mock_travel, db_session) -> None:
        mock_travel.calculate_travel_time.side_effect = travel_minutes({"Office": 20, "Gym": 35})
        await orch.users.set_home_address(USER, "Home")
        event = await orch.calendar.create_event(USER, meeting())
        [before] = await travel_rows(db_session, event.id)

        updated = await orch.calendar.update_event(USER, event.id, EventUpdate(location="Gym"))

        [after] = await travel_rows(db_session, event.id)
        assert after.id == before.id
        assert after.start_time == at(9, 25)
        assert after.end_time == at(10)
        assert after.title == "🚗 Travel to Standup — 35 mins"
        assert updated.travel_time == 35

    @pytest.mark.asyncio
    async def test_time_change_moves_block(self, orch, db_session) -> None:
        await orch.users.set_home_address(USER, "Home")
        event = await orch.calendar.create_event(USER, meeting())

        await orch.calendar.update_event(
            USER, event.id, EventUpdate(start_time=at(14), end_time=at(15)),
        )

        [block] = await travel_rows(db_session, event.id)
        assert (block.start_time, block.end_time) == (at(13, 40), at(14))

    @pytest.mark.asyncio
    async def test_title_change_renames_block(self, orch, db_session) -> None:
        await orch.users.set_home_address(USER, "Home")
        event = await orch.calendar.create_event(USER, meeting())
        await orch.calendar.update_event(USER, event.id, EventUpdate(title="Retro"))
        [block] = await travel_rows(db_session, event.id)
        assert block.title == "🚗 Travel to Retro — 20 mins"

    @pytest.mark.asyncio
    async def test_clearing_location_removes_block(self, orch, db_session) -> None:
        await orch.users.set_home_address(USER, "Home")
        event = await orch.calendar.create_event(USER, meeting())

        updated = await orch.calendar.update_event(USER, event.id, EventUpdate(location=None))

        assert await travel_rows(db_session, event.id) == []
        assert updated.location is None
        assert updated.travel_time is None

    @pytest.mark.asyncio
    async def test_blank_location_removes_block(self, orch, db_session) -> None:
        await orch.users.set_home_address(USER, "Home")
        event = await orch.calendar.create_event(USER, meeting())
        updated = await orch.calendar.update_event(USER, event.id, EventUpdate(location="   "))
        assert await travel_rows(db_session, event.id) == []
        assert updated.travel_time is None

    @pytest.mark.asyncio
    async def test_unavailable_oracle_means_no_block(self, orch, mock_travel, db_session) -> None:
        mock_travel.calculate_travel_time.side_effect = travel_minutes({}, default=None)
        await orch.users.set_home_address(USER, "Home")

        event = await orch.calendar.create_event(USER, meeting())

        assert event.travel_time is None
        assert await travel_rows(db_session, event.id) == []

    @pytest.mark.asyncio
    async def test_oracle_failure_after_success_removes_block(self, orch, mock_travel, db_session) -> None:
        await orch.users.set_home_address(USER, "Home")
        event = await orch.calendar.create_event(USER, meeting())
        mock_travel.calculate_travel_time.side_effect = travel_minutes({}, default=None)

        resynced = await orch.calendar.resync_travel(USER, event.id)

        assert resynced.travel_time is None
        assert await travel_rows(db_session, event.id) == []

    @pytest.mark.asyncio
    async def test_no_origin_means_no_block(self, orch, mock_travel, db_session) -> None:
        event = await orch.calendar.create_event(USER, meeting())

        assert event.travel_time is None
        assert await travel_rows(db_session, event.id) == []
        mock_travel.calculate_travel_time.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_event_without_location_never_calls_oracle(self, orch, mock_travel) -> None:
        await orch.users.set_home_address(USER, "Home")
        event = await orch.calendar.create_event(USER, meeting(location=None))
        assert event.travel_time is None
        mock_travel.calculate_travel_time.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_travel_mode_comes_from_preferences(self, orch, mock_travel, db_session) -> None:
        await orch.users.set_home_address(USER, "Home")
        await orch.users.update_preferences(USER, travel_mode="bike")

        event = await orch.calendar.create_event(USER, meeting())

        mock_travel.calculate_travel_time.assert_awaited_with("Home", "Office", TravelMode.BICYCLING)
        [block] = await travel_rows(db_session, event.id)
        assert block.title.startswith("🚴 ")

    @pytest.mark.asyncio
    async def test_duplicate_blocks_are_collapsed(self, orch, db_session) -> None:
        await orch.users.set_home_address(USER, "Home")
        event = await orch.calendar.create_event(USER, meeting())
        db_session.add(CalendarEventRecord(
            user_id=USER,
            title="stray",
            start_time=at(9),
            end_time=at(10),
            is_fixed=True,
            source=EventSource.TRAVEL.value,
            source_ref=event.id,
        ))
        await db_session.flush()
        assert len(await travel_rows(db_session, event.id)) == 2

        await orch.calendar.resync_travel(USER, event.id)

        assert len(await travel_rows(db_session, event.id)) == 1

    @pytest.mark.asyncio
    async def test_travel_blocks_are_not_synced_themselves(self, orch, mock_travel, db_session) -> None:
        await orch.users.set_home_address(USER, "Home")
        event = await orch.calendar.create_event(USER, meeting())
        [block] = await travel_rows(db_session, event.id)
        mock_travel.calculate_travel_time.reset_mock()

        assert await orch.travel_blocks.sync_event(db_session, block) is None
        mock_travel.calculate_travel_time.assert_not_awaited()


class TestResolveOrigin:
    """Tests for working out where the user departs from."""

    @pytest.mark.asyncio
    async def test_previous_event_location_wins_over_home(self, orch, mock_travel) -> None:
        await orch.users.set_home_address(USER, "Home")
        await orch.calendar.create_event(USER, meeting("Breakfast", "Cafe", at(8), at(9)))

        await orch.calendar.create_event(USER, meeting("Standup", "Office", at(10), at(11)))

        mock_travel.calculate_travel_time.assert_awaited_with("Cafe", "Office", TravelMode.DRIVING)

    @pytest.mark.asyncio
    async def test_latest_finished_event_is_used(self, orch, mock_travel) -> None:
        await orch.calendar.create_event(USER, meeting("Gym", "Gym", at(7), at(8)))
        await orch.calendar.create_event(USER, meeting("Breakfast", "Cafe", at(8, 15), at(9)))
        await orch.calendar.create_event(USER, meeting("Lunch", "Diner", at(12), at(13)))

        await orch.calendar.create_event(USER, meeting("Standup", "Office", at(10), at(11)))

        mock_travel.calculate_travel_time.assert_awaited_with("Cafe", "Office", TravelMode.DRIVING)

    @pytest.mark.asyncio
    async def test_overlapping_event_is_not_an_origin(self, orch, mock_travel) -> None:
        await orch.users.set_home_address(USER, "Home")
        await orch.calendar.create_event(USER, meeting("Workshop", "Lab", at(9), at(10, 30)))
        await orch.calendar.create_event(USER, meeting("Standup", "Office", at(10), at(11)))
        mock_travel.calculate_travel_time.assert_awaited_with("Home", "Office", TravelMode.DRIVING)

    @pytest.mark.asyncio
    async def test_events_without_location_are_skipped(self, orch, mock_travel) -> None:
        await orch.users.set_home_address(USER, "Home")
        await orch.calendar.create_event(USER, meeting("Breakfast", "Cafe", at(7), at(8)))
        await orch.calendar.create_event(USER, meeting("Call", None, at(8, 30), at(9)))
        await orch.calendar.create_event(USER, meeting("Standup", "Office", at(10), at(11)))
        mock_travel.calculate_travel_time.assert_awaited_with("Cafe", "Office", TravelMode.DRIVING)

    @pytest.mark.asyncio
    async def test_other_users_events_are_ignored(self, orch, mock_travel) -> None:
        await orch.users.set_home_address(USER, "Home")
        await orch.calendar.create_event("someone-else", meeting("Breakfast", "Cafe", at(8), at(9)))
        await orch.calendar.create_event(USER, meeting("Standup", "Office", at(10), at(11)))
        mock_travel.calculate_travel_time.assert_awaited_with("Home", "Office", TravelMode.DRIVING)

    @pytest.mark.asyncio
    async def test_previous_day_is_ignored_by_default(self, orch, mock_travel, db_session) -> None:
        yesterday = DAY - dt.timedelta(days=1)
        await orch.users.set_home_address(USER, "Home")
        await orch.calendar.create_event(USER, meeting("Dinner", "Bistro", at(19, day=yesterday), at(21, day=yesterday)))

        event = await orch.calendar.create_event(USER, meeting("Standup", "Office", at(10), at(11)))

        mock_travel.calculate_travel_time.assert_awaited_with("Home", "Office", TravelMode.DRIVING)
        row = await db_session.get(CalendarEventRecord, event.id)
        assert await orch.travel_blocks.resolve_origin(db_session, row) == "Home"

    @pytest.mark.asyncio
    async def test_previous_day_counts_when_lookback_unbounded(self, orch, mock_travel, db_session) -> None:
        yesterday = DAY - dt.timedelta(days=1)
        await orch.calendar.create_event(USER, meeting("Dinner", "Bistro", at(19, day=yesterday), at(21, day=yesterday)))
        event = await orch.calendar.create_event(USER, meeting("Standup", "Office", at(10), at(11)))
        row = await db_session.get(CalendarEventRecord, event.id)

        sync = TravelBlockSynchronizer(mock_travel, UserService(session=db_session), same_day_origin=False)

        assert await sync.resolve_origin(db_session, row) == "Bistro"

    @pytest.mark.asyncio
    async def test_no_previous_event_and_no_home(self, orch, db_session) -> None:
        event = await orch.calendar.create_event(USER, meeting())
        row = await db_session.get(CalendarEventRecord, event.id)
        assert await orch.travel_blocks.resolve_origin(db_session, row) is None
