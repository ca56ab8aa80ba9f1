"""
FastAPI dependencies.

Session-scoped services are created in the application lifespan and stored on
`app.state`; these dependencies hand them to the endpoints.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from triptrace.app.services.batch_geocoder import BatchGeocoder
from triptrace.app.services.geocode_cache import GeocodeCache
from triptrace.app.services.history import HistoryService
from triptrace.app.services.selection import SelectionRegistry
from triptrace.app.services.storage_client import RecordStore

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


def get_geocode_cache(request: Request) -> GeocodeCache:
    return request.app.state.geocode_cache


def get_batch_geocoder(request: Request) -> BatchGeocoder:
    return request.app.state.batch_geocoder


def get_record_store(request: Request) -> RecordStore:
    return request.app.state.record_store


def get_selection_registry(request: Request) -> SelectionRegistry:
    return request.app.state.selection_registry


def get_history_service(
    store: RecordStore = Depends(get_record_store),
    geocoder: BatchGeocoder = Depends(get_batch_geocoder),
    selections: SelectionRegistry = Depends(get_selection_registry),
) -> HistoryService:
    return HistoryService(store, geocoder, selections)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store: RecordStore = Depends(get_record_store),
) -> str:
    """
    Resolve the calling user through the auth collaborator.

    Raises:
        HTTPException: 401 if no bearer token was sent
        AuthenticationError: the collaborator rejected the token
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return await store.get_current_user(credentials.credentials)
