"""Travel-time oracle adapter backed by the Google Directions API.

Unavailability is never an exception here: a missing API key, a network
failure, an error status or a response without a usable duration all come
back as ``None``.
"""

from __future__ import annotations

import math
from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt, wait_exponential

from dayforge.config import get_settings
from dayforge.logging_config import get_logger
from dayforge.modules.travel.models import TravelMode, TravelResult

logger = get_logger(__name__)

_MODE_ALIASES: dict[str, TravelMode] = {
    "drive": TravelMode.DRIVING,
    "driving": TravelMode.DRIVING,
    "car": TravelMode.DRIVING,
    "walk": TravelMode.WALKING,
    "walking": TravelMode.WALKING,
    "transit": TravelMode.TRANSIT,
    "bus": TravelMode.TRANSIT,
    "train": TravelMode.TRANSIT,
    "bike": TravelMode.BICYCLING,
    "bicycle": TravelMode.BICYCLING,
    "bicycling": TravelMode.BICYCLING,
}

_MODE_ICONS: dict[TravelMode, str] = {
    TravelMode.DRIVING: "🚗",
    TravelMode.WALKING: "🚶",
    TravelMode.TRANSIT: "🚌",
    TravelMode.BICYCLING: "🚴",
}


def normalize_travel_mode(preference: Optional[str]) -> TravelMode:
    """Map a user-facing mode (``drive``, ``bus``, ``bike``...) to a canonical one."""
    key = (preference or "drive").strip().lower()
    return _MODE_ALIASES.get(key, TravelMode.DRIVING)


def travel_block_icon(mode: TravelMode | str) -> str:
    return _MODE_ICONS[normalize_travel_mode(mode)]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_directions(payload: Any) -> Optional[TravelResult]:
    """Extract the first leg's duration from a Directions API response.

    Any shape other than ``routes[0].legs[0].duration.value`` holding a
    positive number yields ``None``.
    """
    if not isinstance(payload, dict):
        return None
    routes = payload.get("routes")
    route = routes[0] if isinstance(routes, list) and routes else None
    legs = route.get("legs") if isinstance(route, dict) else None
    leg = legs[0] if isinstance(legs, list) and legs else None
    duration = leg.get("duration") if isinstance(leg, dict) else None
    if not isinstance(duration, dict):
        return None
    seconds = duration.get("value")
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        return None
    if not math.isfinite(seconds) or seconds <= 0:
        return None
    minutes = max(1, _round_half_up(seconds / 60))
    text = duration.get("text")
    if not isinstance(text, str) or not text:
        text = f"{minutes} min"
    return TravelResult(duration_minutes=minutes, duration_text=text)


class TravelService:
    """Looks up door-to-door travel durations."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = get_settings()
        self._api_key = self._settings.google_maps_api_key if api_key is None else api_key
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def calculate_travel_time(
        self,
        origin: str,
        destination: str,
        mode: TravelMode | str = TravelMode.DRIVING,
    ) -> Optional[TravelResult]:
        """Travel duration from ``origin`` to ``destination``, or ``None`` if unknown."""
        if not self.is_configured:
            logger.debug("travel_lookup_skipped", reason="no_api_key")
            return None
        if not origin or not destination:
            return None

        canonical = normalize_travel_mode(mode)
        params = {
            "origin": origin,
            "destination": destination,
            "mode": canonical.value,
            "key": self._api_key,
        }
        try:
            payload = await self._fetch(params)
        except (httpx.HTTPError, RetryError, ValueError) as exc:
            logger.warning(
                "travel_lookup_failed",
                mode=canonical.value,
                error=f"{type(exc).__name__}: {exc}",
            )
            return None

        result = parse_directions(payload)
        if result is None:
            logger.warning("travel_lookup_no_route", mode=canonical.value)
            return None
        logger.info(
            "travel_lookup_ok",
            mode=canonical.value,
            minutes=result.duration_minutes,
        )
        return result

    async def _fetch(self, params: dict[str, str]) -> Any:
        """GET the directions endpoint, retrying transport-level failures."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, self._settings.travel_retry_attempts)),
            wait=wait_exponential(min=0.2, max=2),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                async with httpx.AsyncClient(
                    transport=self._transport,
                    timeout=self._settings.travel_timeout_seconds,
                ) as client:
                    response = await client.get(self._settings.directions_url, params=params)
                    response.raise_for_status()
                    return response.json()
