"""Centralized configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url


class Settings(BaseSettings):
    """Application-wide settings sourced from .env / environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── General ──────────────────────────────────────────────────────
    dayforge_env: str = "development"
    dayforge_log_level: str = "INFO"

    # ── API Server ───────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # ── Database ─────────────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///data/dayforge.db"

    # ── Travel-time oracle (Google Directions) ───────────────────────
    google_maps_api_key: str = ""
    directions_url: str = "https://maps.googleapis.com/maps/api/directions/json"
    travel_timeout_seconds: float = 10.0
    travel_retry_attempts: int = 2
    # Origin lookback stops at midnight; the first event of a day departs from home.
    travel_origin_same_day: bool = True

    # ── Planning defaults ────────────────────────────────────────────
    default_work_hours_start: int = 9
    default_work_hours_end: int = 17
    default_break_minutes: int = 15
    default_travel_mode: str = "drive"
    min_chunk_minutes: int = 15
    max_chunk_minutes: int = 120

    # ── Task priorities ──────────────────────────────────────────────
    priority_refresh_minutes: int = 60
    priority_stale_threshold: float = 1.0

    @field_validator("default_work_hours_start", "default_work_hours_end")
    @classmethod
    def check_hour(cls, value: int) -> int:
        if not 0 <= value <= 23:
            raise ValueError("work hours must be between 0 and 23")
        return value

    # ── Derived ──────────────────────────────────────────────────────
    @property
    def sqlite_path(self) -> Optional[Path]:
        """File backing a SQLite ``database_url``; ``None`` for in-memory or other backends."""
        url = make_url(self.database_url)
        if url.get_backend_name() != "sqlite" or url.database in (None, "", ":memory:"):
            return None
        return Path(url.database)

    @property
    def has_directions_key(self) -> bool:
        """Whether the travel-time oracle has credentials configured."""
        return bool(self.google_maps_api_key)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the singleton Settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
