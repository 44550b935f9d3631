"""Data models for day planning."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from dayforge.modules.calendar.models import EventSource


class ProposedEvent(BaseModel):
    """One entry of a proposed day schedule.

    Entries carrying an ``id`` already exist in the calendar; entries without
    one are new blocks that the accept step would persist.
    """

    id: Optional[str] = None
    title: str
    start_time: dt.datetime
    end_time: dt.datetime
    is_fixed: bool
    color: Optional[str] = None
    source: Optional[EventSource] = None
    source_ref: Optional[str] = None
    task_id: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def wall_clock_times(cls, value: dt.datetime) -> dt.datetime:
        return value.replace(tzinfo=None) if value.tzinfo else value

    @property
    def is_proposed(self) -> bool:
        return self.id is None

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() / 60)


class DayPlan(BaseModel):
    """Planner output for one calendar day."""

    date: dt.date
    schedule: list[ProposedEvent] = Field(default_factory=list)

    @property
    def proposed_count(self) -> int:
        return sum(1 for entry in self.schedule if entry.is_proposed)
