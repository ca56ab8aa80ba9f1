"""
Batch Geocoding Service.

Annotates a snapshot of travel records with resolved places, issuing at most
one provider call per quantized coordinate, and owns the canonical place
label used by every view.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from triptrace.app.schemas.geocoding import (
    CoordinateKey,
    PlaceResult,
    UNKNOWN,
    UNKNOWN_CITY,
    UNKNOWN_STATE,
    UNKNOWN_LOCATION,
)
from triptrace.app.schemas.history import AnnotatedRecord
from triptrace.app.schemas.travel_record import TravelRecord
from triptrace.app.services.geocode_cache import GeocodeCache
from triptrace.app.services.geocode_resolver import GeocodeResolver

logger = logging.getLogger(__name__)

_UNKNOWN_PARTS = {"", UNKNOWN, UNKNOWN_CITY, UNKNOWN_STATE}


def _known(part: Optional[str]) -> bool:
    return bool(part) and part not in _UNKNOWN_PARTS


def format_place(place: Optional[PlaceResult]) -> str:
    """
    Format a place for display.

    "City, State" when both are known, otherwise whichever one is known,
    otherwise the full address, otherwise "Unknown Location".
    """
    if place is None:
        return UNKNOWN_LOCATION

    city_known = _known(place.city)
    state_known = _known(place.state)
    if city_known and state_known:
        return f"{place.city}, {place.state}"
    if city_known:
        return place.city
    if state_known:
        return place.state
    return place.full_address or UNKNOWN_LOCATION


def display_label(record: TravelRecord, place: Optional[PlaceResult]) -> str:
    """Label shown for a record: resolved place, else the raw label the user typed."""
    if place is not None:
        return format_place(place)
    return record.location or UNKNOWN_LOCATION


class BatchGeocoder:

    format = staticmethod(format_place)

    def __init__(self, cache: GeocodeCache, resolver: GeocodeResolver):
        self.cache = cache
        self.resolver = resolver

    async def geocode(self, latitude: float, longitude: float) -> PlaceResult:
        """Resolve a single coordinate through the shared cache."""
        key = CoordinateKey.from_coordinates(latitude, longitude)
        return await self.cache.resolve_or_fetch(key, self.resolver.resolve_key)

    async def annotate(self, records: Sequence[TravelRecord]) -> List[AnnotatedRecord]:
        """
        Pair every record with its resolved place.

        Geotagged records are resolved concurrently; records sharing a
        quantized coordinate share one provider call. Records without
        coordinates pass through with no place. Output order matches input.
        """
        geotagged = [r for r in records if r.has_coordinates]
        places = await asyncio.gather(
            *(self.geocode(r.latitude, r.longitude) for r in geotagged)
        )
        resolved = {id(r): place for r, place in zip(geotagged, places)}

        if geotagged:
            failed = sum(1 for p in places if p.failed)
            logger.info(
                "Annotated %d records (%d geotagged, %d degraded)",
                len(records), len(geotagged), failed,
            )

        annotated = []
        for record in records:
            place = resolved.get(id(record))
            annotated.append(
                AnnotatedRecord(record=record, place=place, label=display_label(record, place))
            )
        return annotated
