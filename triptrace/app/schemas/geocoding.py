"""
Reverse geocoding schemas.

CoordinateKey is the cache/dedup key, PlaceResult the normalized provider answer.
"""

from decimal import Decimal, ROUND_HALF_UP
from pydantic import BaseModel
from typing import Any, Dict, Optional

COORDINATE_PRECISION = 4
_QUANTUM = Decimal(1).scaleb(-COORDINATE_PRECISION)  # 0.0001, ~11m

UNKNOWN = "Unknown"
UNKNOWN_CITY = "Unknown City"
UNKNOWN_STATE = "Unknown State"
UNKNOWN_LOCATION = "Unknown Location"


def quantize_coordinate(value: float) -> float:
    """Round a coordinate to 4 decimal places, half away from zero."""
    return float(Decimal(repr(float(value))).quantize(_QUANTUM, rounding=ROUND_HALF_UP))


def format_coordinates(latitude: float, longitude: float) -> str:
    """Format a coordinate pair as "lat, lon" with 4 decimals."""
    return f"{quantize_coordinate(latitude):.{COORDINATE_PRECISION}f}, {quantize_coordinate(longitude):.{COORDINATE_PRECISION}f}"


class CoordinateKey(BaseModel):
    """Quantized (latitude, longitude) pair used as cache key."""
    lat: float
    lon: float

    class Config:
        frozen = True

    @classmethod
    def from_coordinates(cls, latitude: float, longitude: float) -> "CoordinateKey":
        return cls(lat=quantize_coordinate(latitude), lon=quantize_coordinate(longitude))

    def __str__(self) -> str:
        return f"{self.lat:.{COORDINATE_PRECISION}f},{self.lon:.{COORDINATE_PRECISION}f}"


class PlaceResult(BaseModel):
    """Human-readable place resolved for a coordinate."""
    city: str = UNKNOWN_CITY
    state: str = UNKNOWN_STATE
    country: str = ""
    full_address: str = ""
    error: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None

    class Config:
        frozen = True

    @property
    def failed(self) -> bool:
        return self.error is not None

    @classmethod
    def degraded(cls, latitude: float, longitude: float, error: str) -> "PlaceResult":
        """Placeholder returned when the provider could not resolve a coordinate."""
        return cls(
            city=UNKNOWN,
            state=UNKNOWN,
            country="",
            full_address=format_coordinates(latitude, longitude),
            error=error,
        )


class ReverseGeocodeResponse(BaseModel):
    """Response for a single-coordinate lookup."""
    key: str
    label: str
    place: PlaceResult


class GeocodeCacheStats(BaseModel):
    entries: int
    in_flight: int
    cache_failures: bool
