"""
Travel History API Endpoints.

Timeline + map payload, record deletion, and the per-view selection state
shared by the map and timeline.
"""

from fastapi import APIRouter, Depends, Path, status

from triptrace.app.core.dependencies import (
    get_current_user_id,
    get_history_service,
    get_selection_registry,
)
from triptrace.app.schemas.history import HistoryView
from triptrace.app.schemas.selection import (
    HighlightState,
    SelectionEvent,
    SelectionRequest,
    SignalType,
)
from triptrace.app.services.history import HistoryService
from triptrace.app.services.selection import SelectionRegistry

router = APIRouter(prefix="/history", tags=["History"])
records_router = APIRouter(prefix="/records", tags=["Records"])


@router.get("/{view_id}", response_model=HistoryView)
async def get_history(
    view_id: str = Path(..., min_length=1, max_length=100),
    user_id: str = Depends(get_current_user_id),
    service: HistoryService = Depends(get_history_service),
):
    """
    Load the user's travel history.

    Returns annotated records grouped by month for the timeline, geotagged
    records in chronological order with the travel path for the map, and the
    view's current highlight (stale highlights are dropped).
    """
    return await service.load_history(user_id, view_id)


@router.get("/{view_id}/selection", response_model=HighlightState)
async def get_selection(
    view_id: str = Path(..., min_length=1, max_length=100),
    user_id: str = Depends(get_current_user_id),
    registry: SelectionRegistry = Depends(get_selection_registry),
):
    """Current highlight of a history view."""
    coordinator = registry.find(user_id, view_id)
    return HighlightState(highlighted_record_id=coordinator.highlighted if coordinator else None)


@router.post("/{view_id}/selection", response_model=HighlightState)
async def select_record(
    req: SelectionRequest,
    view_id: str = Path(..., min_length=1, max_length=100),
    user_id: str = Depends(get_current_user_id),
    registry: SelectionRegistry = Depends(get_selection_registry),
):
    """Highlight a record after a click in the map or the timeline."""
    coordinator = registry.get(user_id, view_id)
    event = coordinator.select(req.record_id, req.source)
    return HighlightState(highlighted_record_id=coordinator.highlighted, event=event)


@router.delete("/{view_id}/selection", response_model=HighlightState)
async def clear_selection(
    view_id: str = Path(..., min_length=1, max_length=100),
    user_id: str = Depends(get_current_user_id),
    registry: SelectionRegistry = Depends(get_selection_registry),
):
    """Drop the highlight (e.g. the detail modal was closed) and release the view state."""
    coordinator = registry.find(user_id, view_id)
    if coordinator is None:
        event = SelectionEvent(signal=SignalType.CLEARED)
    else:
        event = coordinator.clear()
        registry.drop(user_id, view_id)
    return HighlightState(highlighted_record_id=None, event=event)


@records_router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_record(
    record_id: str = Path(...),
    user_id: str = Depends(get_current_user_id),
    service: HistoryService = Depends(get_history_service),
):
    """Delete one of the current user's travel records."""
    await service.delete_record(user_id, record_id)
