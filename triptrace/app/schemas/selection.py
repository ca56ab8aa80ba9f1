"""
Selection schemas shared by the map and timeline views.
"""

import enum

from pydantic import BaseModel
from typing import Optional


class SelectionSource(str, enum.Enum):
    TIMELINE = "TIMELINE"
    MAP = "MAP"


class SignalType(str, enum.Enum):
    OPEN_POPUP = "OPEN_POPUP"              # map: open marker popup, pan into view
    SCROLL_INTO_VIEW = "SCROLL_INTO_VIEW"  # timeline: scroll item into view
    CLEARED = "CLEARED"                    # both: drop highlight


class SelectionEvent(BaseModel):
    """Signal emitted to views when the highlight changes."""
    signal: SignalType
    record_id: Optional[str] = None
    source: Optional[SelectionSource] = None
    scroll_block: Optional[str] = None
    scroll_behavior: Optional[str] = None

    class Config:
        frozen = True


class SelectionRequest(BaseModel):
    record_id: str
    source: SelectionSource


class HighlightState(BaseModel):
    highlighted_record_id: Optional[str] = None
    event: Optional[SelectionEvent] = None
