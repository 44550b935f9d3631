"""Travel-time lookups and derived travel blocks."""

from dayforge.modules.travel.models import TravelMode, TravelResult
from dayforge.modules.travel.service import TravelService, normalize_travel_mode

__all__ = ["TravelMode", "TravelResult", "TravelService", "normalize_travel_mode"]
