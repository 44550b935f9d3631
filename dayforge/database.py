"""Async database engine and session management.

All services share one engine. A service either receives an ``AsyncSession``
from its caller (tests, batch commands that must commit together) or opens its
own transactional session per operation through :func:`session_scope`.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from dayforge.config import get_settings
from dayforge.logging_config import get_logger

logger = get_logger(__name__)

convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base for calendar, task and user tables."""

    metadata = MetaData(naming_convention=convention)


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating the SQLite directory on first use."""
    global _engine
    if _engine is None:
        settings = get_settings()
        sqlite_path = settings.sqlite_path
        if sqlite_path is not None:
            sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.dayforge_log_level.upper() == "DEBUG",
            pool_pre_ping=True,
        )
        logger.debug("database_engine_created", sqlite_path=str(sqlite_path) if sqlite_path else None)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Open a session that commits on success and rolls back on any error."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def session_scope(session: Optional[AsyncSession] = None) -> AsyncGenerator[AsyncSession, None]:
    """Yield the caller's session untouched, or a fresh one from :func:`get_session`.

    An injected session belongs to the caller and is neither committed nor
    closed here, so several service calls can share one transaction.
    """
    if session is not None:
        yield session
        return
    async with get_session() as fresh:
        yield fresh


async def init_db() -> None:
    """Create the calendar, task and user tables if they do not exist."""
    import dayforge.modules.calendar.models  # noqa: F401
    import dayforge.modules.tasks.models  # noqa: F401
    import dayforge.modules.users.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_initialized", tables=sorted(Base.metadata.tables))


async def close_db() -> None:
    """Dispose of the engine so the next call to :func:`get_engine` starts fresh."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("database_closed")
