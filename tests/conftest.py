"""Shared test fixtures and configuration."""

from __future__ import annotations

import datetime as dt
import os
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

os.environ.setdefault("DAYFORGE_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DAYFORGE_LOG_LEVEL", "WARNING")
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "")

from dayforge.config import Settings
from dayforge.database import Base
import dayforge.modules.calendar.models  # noqa: F401
import dayforge.modules.tasks.models  # noqa: F401
import dayforge.modules.users.models  # noqa: F401
from dayforge.modules.travel.models import TravelResult

USER = "user-1"
DAY = dt.date(2026, 3, 10)


def at(hour: int, minute: int = 0, day: dt.date = DAY) -> dt.datetime:
    """Naive wall-clock datetime on the test day."""
    return dt.datetime.combine(day, dt.time(hour, minute))


@pytest.fixture
def settings() -> Settings:
    """Return test settings."""
    return Settings(
        dayforge_env="test",
        database_url="sqlite+aiosqlite:///:memory:",
        dayforge_log_level="WARNING",
        _env_file=None,
    )


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a clean in-memory database session for each test."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


def travel_minutes(table: dict[str, int], default: Optional[int] = None):
    """Build an oracle side effect keyed by destination."""

    async def _lookup(origin: str, destination: str, mode=None) -> Optional[TravelResult]:
        minutes = table.get(destination, default)
        if minutes is None:
            return None
        return TravelResult(duration_minutes=minutes, duration_text=f"{minutes} mins")

    return _lookup


@pytest.fixture
def mock_travel():
    """A TravelService stand-in: 20 minutes to anywhere unless reconfigured."""
    travel = AsyncMock()
    travel.is_configured = True
    travel.calculate_travel_time = AsyncMock(side_effect=travel_minutes({}, default=20))
    return travel


@pytest.fixture
def orch(db_session, mock_travel):
    """An Orchestrator whose services share the test session and the mocked oracle."""
    from dayforge.orchestrator import Orchestrator

    return Orchestrator(travel=mock_travel, session=db_session)
