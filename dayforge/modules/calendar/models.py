"""Database records and Pydantic schemas for calendar events."""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from dayforge.database import Base

FIXED_COLOR = "#3B82F6"
FLEXIBLE_COLOR = "#22C55E"
TRAVEL_COLOR = "#6B7280"


class EventSource(StrEnum):
    """Provenance tag for a calendar event."""

    MANUAL = "manual"
    PLAN = "plan"
    CHAT = "chat"
    EMAIL = "email"
    TRAVEL = "travel"


class CalendarEventRecord(Base):
    """SQLAlchemy model for a user's calendar event."""

    __tablename__ = "calendar_events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(128), nullable=False)
    title = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(512), nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    is_fixed = Column(Boolean, default=False, nullable=False)
    color = Column(String(20), default=FLEXIBLE_COLOR, nullable=False)
    travel_time = Column(Integer, nullable=True)  # minutes, cached from the oracle
    source = Column(String(16), default=EventSource.MANUAL.value, nullable=False)
    source_ref = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=lambda: dt.datetime.now(dt.UTC), nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: dt.datetime.now(dt.UTC),
        onupdate=lambda: dt.datetime.now(dt.UTC),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_calendar_events_user_start", "user_id", "start_time"),
        Index("ix_calendar_events_user_source_ref", "user_id", "source", "source_ref"),
    )

    def __repr__(self) -> str:
        return (
            f"<CalendarEventRecord(id={self.id}, title={self.title}, "
            f"source={self.source}, start={self.start_time})>"
        )


class CalendarEvent(BaseModel):
    """Read model for a persisted calendar event."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    start_time: dt.datetime
    end_time: dt.datetime
    is_fixed: bool = False
    color: str = FLEXIBLE_COLOR
    travel_time: Optional[int] = None
    source: EventSource = EventSource.MANUAL
    source_ref: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        """Event duration in minutes."""
        return int((self.end_time - self.start_time).total_seconds() / 60)

    @property
    def is_travel(self) -> bool:
        return self.source == EventSource.TRAVEL


def to_wall_clock(value: Optional[dt.datetime]) -> Optional[dt.datetime]:
    """Drop tzinfo so every stored time is naive local wall-clock."""
    if value is not None and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


class EventCreate(BaseModel):
    """Fields accepted when creating a primary event."""

    title: str = Field(..., min_length=1, max_length=160)
    description: Optional[str] = Field(None, max_length=2000)
    location: Optional[str] = Field(None, max_length=200)
    start_time: dt.datetime
    end_time: dt.datetime
    is_fixed: bool = False
    color: Optional[str] = Field(None, max_length=20)
    source_ref: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def wall_clock_times(cls, value):
        return to_wall_clock(value)

    @model_validator(mode="after")
    def check_window(self) -> "EventCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class EventUpdate(BaseModel):
    """Partial update for a primary event. Only fields explicitly set are applied."""

    title: Optional[str] = Field(None, min_length=1, max_length=160)
    description: Optional[str] = Field(None, max_length=2000)
    location: Optional[str] = Field(None, max_length=200)
    start_time: Optional[dt.datetime] = None
    end_time: Optional[dt.datetime] = None
    is_fixed: Optional[bool] = None
    color: Optional[str] = Field(None, max_length=20)

    @field_validator("start_time", "end_time")
    @classmethod
    def wall_clock_times(cls, value):
        return to_wall_clock(value)
