"""
Travel record schema.

Records are produced by the upload collaborator and read-only to this service.
"""

from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from typing import Optional


class TravelRecord(BaseModel):
    """A single travel memory: one photo, a place and a date."""
    id: str
    user_id: str
    photo_url: str = ""
    location: str = Field(default="", description="User supplied location label, may be empty")
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    travel_date: date
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        frozen = True

    @model_validator(mode="after")
    def check_coordinate_pair(self) -> "TravelRecord":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None
