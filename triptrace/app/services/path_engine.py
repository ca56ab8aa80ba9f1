"""
Travel path service.

Orders geotagged records by travel date, builds the poly-path between them
and computes its great-circle length. Also derives map framing (center and
bounds). The path follows chronology, never geographic proximity.
"""

import math
from typing import List, Optional, Sequence

from triptrace.app.schemas.history import MapBounds, MapCenter, PathPoint, TravelPath
from triptrace.app.schemas.travel_record import TravelRecord

# Radius of Earth in kilometers
EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in kilometers
    """
    # Convert degrees to radians
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)

    # Haversine formula
    dlat = lat2_rad - lat1_rad
    dlon = math.radians(lon2 - lon1)

    a = math.sin(dlat / 2)**2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def order_chronologically(records: Sequence[TravelRecord]) -> List[TravelRecord]:
    """Geotagged records, oldest first. Ties keep their input order."""
    # sorted() is stable
    return sorted((r for r in records if r.has_coordinates), key=lambda r: r.travel_date)


def build_path(records: Sequence[TravelRecord]) -> TravelPath:
    """
    Build the chronological path through all geotagged records.

    Fewer than two geotagged records produce an empty path with zero distance.
    """
    ordered = order_chronologically(records)
    if len(ordered) < 2:
        return TravelPath()

    total = 0.0
    for prev, curr in zip(ordered, ordered[1:]):
        total += haversine_distance(prev.latitude, prev.longitude, curr.latitude, curr.longitude)

    return TravelPath(
        points=[
            PathPoint(
                record_id=r.id,
                latitude=r.latitude,
                longitude=r.longitude,
                travel_date=r.travel_date,
            )
            for r in ordered
        ],
        total_distance_km=total,
        start_date=ordered[0].travel_date,
        end_date=ordered[-1].travel_date,
    )


def compute_center(records: Sequence[TravelRecord]) -> Optional[MapCenter]:
    geotagged = [r for r in records if r.has_coordinates]
    if not geotagged:
        return None
    return MapCenter(
        latitude=sum(r.latitude for r in geotagged) / len(geotagged),
        longitude=sum(r.longitude for r in geotagged) / len(geotagged),
    )


def compute_bounds(records: Sequence[TravelRecord]) -> Optional[MapBounds]:
    geotagged = [r for r in records if r.has_coordinates]
    if not geotagged:
        return None
    lats = [r.latitude for r in geotagged]
    lons = [r.longitude for r in geotagged]
    return MapBounds(south=min(lats), west=min(lons), north=max(lats), east=max(lons))
