"""
Reverse Geocoding Service.

Converts coordinates into human-readable places using a Nominatim-compatible
reverse endpoint. Failures never propagate: they are normalized into a
degraded PlaceResult so rendering always proceeds.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import httpx

from triptrace.app.core.config import settings
from triptrace.app.core.reliability import CircuitBreaker, CircuitOpenError
from triptrace.app.schemas.geocoding import (
    CoordinateKey,
    PlaceResult,
    UNKNOWN_CITY,
    UNKNOWN_STATE,
)

logger = logging.getLogger(__name__)

CITY_FIELDS = ("city", "town", "village", "hamlet", "municipality", "county")
STATE_FIELDS = ("state", "province", "region", "county")


class GeocodingProviderError(Exception):
    """Provider answered, but not with something we can use."""
    pass


def extract_city(address: Dict[str, Any]) -> str:
    for field in CITY_FIELDS:
        if address.get(field):
            return address[field]
    return UNKNOWN_CITY


def extract_state(address: Dict[str, Any]) -> str:
    for field in STATE_FIELDS:
        if address.get(field):
            return address[field]
    return UNKNOWN_STATE


def parse_place(data: Any) -> PlaceResult:
    """
    Normalize a provider payload into a PlaceResult.

    Raises:
        GeocodingProviderError: payload has no usable address block
    """
    if not isinstance(data, dict):
        raise GeocodingProviderError("Malformed geocoding payload")
    address = data.get("address")
    if not isinstance(address, dict) or not address:
        raise GeocodingProviderError(data.get("error") or "No address data found")

    return PlaceResult(
        city=extract_city(address),
        state=extract_state(address),
        country=address.get("country") or "",
        full_address=data.get("display_name") or "",
        raw=address,
    )


class GeocodeResolver:
    """Client for the reverse geocoding provider."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = settings.geocoder_url,
        user_agent: str = settings.geocoder_user_agent,
        language: str = settings.geocoder_language,
        timeout_seconds: float = settings.geocoder_timeout_seconds,
        min_interval_seconds: float = settings.geocoder_min_interval_seconds,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.base_url = base_url
        self.user_agent = user_agent
        self.language = language
        self.timeout_seconds = timeout_seconds
        self.min_interval_seconds = min_interval_seconds
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.geocoder_circuit_threshold,
            reset_timeout=settings.geocoder_circuit_reset_seconds,
        )
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._throttle_lock = asyncio.Lock()
        self._last_request_at: Optional[float] = None

    async def reverse_geocode(self, latitude: float, longitude: float) -> PlaceResult:
        """
        Resolve a coordinate to a place.

        Args:
            latitude: Latitude in degrees
            longitude: Longitude in degrees

        Returns:
            PlaceResult. On any failure (network error, timeout, non-2xx,
            malformed payload, missing address block, open circuit) the
            degraded result with "Unknown" city/state and the coordinate as
            full address, with `error` set.
        """
        try:
            data = await self.circuit_breaker.call(self._request, latitude, longitude)
            place = parse_place(data)
        except asyncio.TimeoutError:
            return self._failure(latitude, longitude, f"Timed out after {self.timeout_seconds}s")
        except httpx.HTTPStatusError as e:
            return self._failure(latitude, longitude, f"HTTP error! status: {e.response.status_code}")
        except (httpx.HTTPError, GeocodingProviderError, CircuitOpenError, ValueError) as e:
            return self._failure(latitude, longitude, str(e) or type(e).__name__)
        except Exception as e:
            logger.exception("Unexpected error during geocoding")
            return self._failure(latitude, longitude, str(e) or type(e).__name__)

        logger.info("Successfully geocoded coordinates (%s, %s)", latitude, longitude)
        return place

    async def resolve_key(self, key: CoordinateKey) -> PlaceResult:
        """Fetcher adapter for GeocodeCache.resolve_or_fetch."""
        return await self.reverse_geocode(key.lat, key.lon)

    async def _request(self, latitude: float, longitude: float) -> Any:
        await self._throttle()
        params = {
            "lat": latitude,
            "lon": longitude,
            "format": "json",
            "addressdetails": 1,
            "accept-language": self.language,
        }
        headers = {"User-Agent": self.user_agent}

        response = await asyncio.wait_for(
            self._client.get(self.base_url, params=params, headers=headers),
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    async def _throttle(self):
        """Space provider calls at least `min_interval_seconds` apart."""
        if self.min_interval_seconds <= 0:
            return
        async with self._throttle_lock:
            if self._last_request_at is not None:
                wait = self._last_request_at + self.min_interval_seconds - time.monotonic()
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_request_at = time.monotonic()

    def _failure(self, latitude: float, longitude: float, message: str) -> PlaceResult:
        logger.warning("Geocoding failed for coordinates (%s, %s): %s", latitude, longitude, message)
        return PlaceResult.degraded(latitude, longitude, message)

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()
