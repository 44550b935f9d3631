"""Data models for travel-time lookups."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class TravelMode(StrEnum):
    """Canonical modes understood by the directions provider."""

    DRIVING = "driving"
    WALKING = "walking"
    TRANSIT = "transit"
    BICYCLING = "bicycling"


class TravelResult(BaseModel):
    """A successful travel-time lookup."""

    duration_minutes: int = Field(..., ge=1)
    duration_text: str
