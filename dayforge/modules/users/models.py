"""Database models for user profiles and scheduling preferences."""

from __future__ import annotations

import datetime as dt

from typing import Optional

from pydantic import BaseModel, Field
from sqlalchemy import Column, DateTime, Integer, String

from dayforge.database import Base


class UserProfileRecord(Base):
    """Per-user profile data the scheduling core needs (the home address)."""

    __tablename__ = "user_profiles"

    user_id = Column(String(128), primary_key=True)
    display_name = Column(String(256), nullable=True)
    home_address = Column(String(512), nullable=True)
    created_at = Column(DateTime, default=lambda: dt.datetime.now(dt.UTC), nullable=False)

    def __repr__(self) -> str:
        return f"<UserProfileRecord(user_id={self.user_id})>"


class UserPreferenceRecord(Base):
    """Stored scheduling preferences. Missing rows fall back to config defaults."""

    __tablename__ = "user_preferences"

    user_id = Column(String(128), primary_key=True)
    work_hours_start = Column(Integer, nullable=False, default=9)
    work_hours_end = Column(Integer, nullable=False, default=17)
    break_minutes = Column(Integer, nullable=False, default=15)
    buffer_minutes = Column(Integer, nullable=True)
    travel_mode = Column(String(16), nullable=False, default="drive")
    updated_at = Column(
        DateTime,
        default=lambda: dt.datetime.now(dt.UTC),
        onupdate=lambda: dt.datetime.now(dt.UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<UserPreferenceRecord(user_id={self.user_id}, "
            f"hours={self.work_hours_start}-{self.work_hours_end}, mode={self.travel_mode})>"
        )


class UserPrefs(BaseModel):
    """Scheduling-relevant subset of a user's preferences."""

    work_hours_start: int = Field(9, ge=0, le=23)
    work_hours_end: int = Field(17, ge=0, le=23)
    break_minutes: int = Field(15, ge=0)
    travel_mode: str = "drive"
    buffer_minutes: Optional[int] = Field(None, ge=0)

    @property
    def effective_buffer(self) -> int:
        """Planning buffer: the explicit override, else the break length."""
        if self.buffer_minutes is not None:
            return self.buffer_minutes
        return self.break_minutes
