"""
Geocoding API Endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from triptrace.app.core.config import settings
from triptrace.app.core.dependencies import (
    get_batch_geocoder,
    get_current_user_id,
    get_geocode_cache,
)
from triptrace.app.schemas.geocoding import (
    CoordinateKey,
    GeocodeCacheStats,
    ReverseGeocodeResponse,
)
from triptrace.app.services.batch_geocoder import BatchGeocoder, format_place
from triptrace.app.services.geocode_cache import GeocodeCache

router = APIRouter(prefix="/geocode", tags=["Geocoding"])


@router.get("/reverse", response_model=ReverseGeocodeResponse)
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    user_id: str = Depends(get_current_user_id),
    geocoder: BatchGeocoder = Depends(get_batch_geocoder),
):
    """Resolve a single coordinate (cached, provider failures degrade)."""
    place = await geocoder.geocode(lat, lon)
    return ReverseGeocodeResponse(
        key=str(CoordinateKey.from_coordinates(lat, lon)),
        label=format_place(place),
        place=place,
    )


@router.get("/cache", response_model=GeocodeCacheStats)
async def cache_stats(
    user_id: str = Depends(get_current_user_id),
    cache: GeocodeCache = Depends(get_geocode_cache),
):
    return GeocodeCacheStats(
        entries=len(cache), in_flight=cache.in_flight, cache_failures=cache.cache_failures
    )


@router.delete("/cache", response_model=GeocodeCacheStats)
async def clear_cache(
    user_id: str = Depends(get_current_user_id),
    cache: GeocodeCache = Depends(get_geocode_cache),
):
    """
    Forget every resolved place, including cached failures.

    The cache is shared by every user of the process, so this is a
    maintenance operation available only when the app runs in debug mode.
    """
    if not settings.debug:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Clearing the geocode cache is disabled",
        )
    cache.clear()
    return GeocodeCacheStats(
        entries=len(cache), in_flight=cache.in_flight, cache_failures=cache.cache_failures
    )
