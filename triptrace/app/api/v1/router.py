"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from triptrace.app.api.v1.endpoints import history, geocoding

router = APIRouter()

# Timeline, map and selection
router.include_router(history.router)
router.include_router(history.records_router)

# Reverse geocoding and cache maintenance
router.include_router(geocoding.router)
