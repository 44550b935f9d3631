"""Database records and Pydantic schemas for tasks."""

from __future__ import annotations

import datetime as dt
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String, Text

from dayforge.database import Base


class TaskRecord(Base):
    """SQLAlchemy model for a user's task."""

    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(128), nullable=False)
    title = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=True)
    estimated_time = Column(Integer, nullable=True)  # minutes
    importance = Column(Integer, nullable=False, default=5)
    category = Column(String(40), nullable=True)
    priority_score = Column(Float, nullable=False, default=0.0)
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=lambda: dt.datetime.now(dt.UTC), nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: dt.datetime.now(dt.UTC),
        onupdate=lambda: dt.datetime.now(dt.UTC),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_tasks_user_completed_priority", "user_id", "is_completed", "priority_score"),
    )

    def __repr__(self) -> str:
        return f"<TaskRecord(id={self.id}, title={self.title}, priority={self.priority_score})>"


class Task(BaseModel):
    """Read model for a task."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    due_date: Optional[dt.datetime] = None
    estimated_time: Optional[int] = None
    importance: int = 5
    category: Optional[str] = None
    priority_score: float = 0.0
    is_completed: bool = False


class TaskCreate(BaseModel):
    """Fields accepted when creating a task."""

    title: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=2000)
    due_date: Optional[dt.datetime] = None
    estimated_time: Optional[int] = Field(None, ge=15, le=24 * 60)
    importance: int = Field(5, ge=1, le=10)
    category: Optional[str] = Field(None, max_length=40)

    @field_validator("due_date")
    @classmethod
    def wall_clock_due(cls, value: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return value.replace(tzinfo=None) if value and value.tzinfo else value


class TaskUpdate(BaseModel):
    """Partial task update. Only fields explicitly set are applied."""

    title: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=2000)
    due_date: Optional[dt.datetime] = None
    estimated_time: Optional[int] = Field(None, ge=15, le=24 * 60)
    importance: Optional[int] = Field(None, ge=1, le=10)
    category: Optional[str] = Field(None, max_length=40)

    @field_validator("due_date")
    @classmethod
    def wall_clock_due(cls, value: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return value.replace(tzinfo=None) if value and value.tzinfo else value
