"""
History view schemas.

Shapes consumed by the timeline and map views.
"""

from pydantic import BaseModel
from datetime import date
from typing import List, Optional

from triptrace.app.schemas.travel_record import TravelRecord
from triptrace.app.schemas.geocoding import PlaceResult


class AnnotatedRecord(BaseModel):
    """A travel record paired with its resolved place, if any."""
    record: TravelRecord
    place: Optional[PlaceResult] = None
    label: str

    @property
    def id(self) -> str:
        return self.record.id


class PathPoint(BaseModel):
    record_id: str
    latitude: float
    longitude: float
    travel_date: date


class TravelPath(BaseModel):
    """Chronological poly-path between geotagged records."""
    points: List[PathPoint] = []
    total_distance_km: float = 0.0
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class MapCenter(BaseModel):
    latitude: float
    longitude: float


class MapBounds(BaseModel):
    south: float
    west: float
    north: float
    east: float


class TimelineGroup(BaseModel):
    """Records sharing a (year, month) of travel."""
    key: str  # YYYY-MM
    label: str
    year: int
    month: int
    records: List[AnnotatedRecord] = []


class HistoryView(BaseModel):
    """Everything the history page renders from one record snapshot."""
    records: List[AnnotatedRecord]
    timeline: List[TimelineGroup]
    mapped: List[AnnotatedRecord]
    path: TravelPath
    center: Optional[MapCenter] = None
    bounds: Optional[MapBounds] = None
    highlighted_record_id: Optional[str] = None
    total_count: int
    mapped_count: int
