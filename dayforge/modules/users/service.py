"""User profile and preference access."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from dayforge.config import get_settings
from dayforge.database import session_scope
from dayforge.logging_config import get_logger
from dayforge.modules.users.models import UserPreferenceRecord, UserPrefs, UserProfileRecord

logger = get_logger(__name__)

_PREF_FIELDS = ("work_hours_start", "work_hours_end", "break_minutes", "buffer_minutes", "travel_mode")


class UserService:
    """Reads and writes the user data the scheduling core depends on."""

    def __init__(self, session: Optional[AsyncSession] = None) -> None:
        self._session = session
        self._settings = get_settings()

    def _defaults(self) -> UserPrefs:
        return UserPrefs(
            work_hours_start=self._settings.default_work_hours_start,
            work_hours_end=self._settings.default_work_hours_end,
            break_minutes=self._settings.default_break_minutes,
            travel_mode=self._settings.default_travel_mode,
        )

    async def get_preferences(self, user_id: str, session: Optional[AsyncSession] = None) -> UserPrefs:
        """Return the user's preferences, or the configured defaults."""
        async with session_scope(session or self._session) as s:
            row = await s.get(UserPreferenceRecord, user_id)
        if row is None:
            return self._defaults()
        return UserPrefs(**{name: getattr(row, name) for name in _PREF_FIELDS})

    async def update_preferences(self, user_id: str, **changes: Any) -> UserPrefs:
        """Apply the given preference fields, creating the row on first write.

        Raises:
            ValueError: If the resulting preferences are invalid.
        """
        unknown = set(changes) - set(_PREF_FIELDS)
        if unknown:
            raise ValueError(f"Unknown preference fields: {sorted(unknown)}")

        async with session_scope(self._session) as session:
            current = await self.get_preferences(user_id, session=session)
            merged = UserPrefs(**{**current.model_dump(), **changes})
            row = await session.get(UserPreferenceRecord, user_id)
            if row is None:
                row = UserPreferenceRecord(user_id=user_id)
                session.add(row)
            for name in _PREF_FIELDS:
                setattr(row, name, getattr(merged, name))
            await session.flush()

        logger.info("preferences_updated", user_id=user_id, fields=sorted(changes))
        return merged

    async def get_home_address(self, user_id: str, session: Optional[AsyncSession] = None) -> Optional[str]:
        async with session_scope(session or self._session) as s:
            row = await s.get(UserProfileRecord, user_id)
        if row is None or not row.home_address:
            return None
        return row.home_address

    async def set_home_address(self, user_id: str, address: Optional[str]) -> None:
        async with session_scope(self._session) as session:
            row = await session.get(UserProfileRecord, user_id)
            if row is None:
                row = UserProfileRecord(user_id=user_id)
                session.add(row)
            row.home_address = (address or "").strip() or None
            await session.flush()
        logger.info("home_address_updated", user_id=user_id, cleared=not address)
