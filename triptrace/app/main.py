"""
FastAPI Application Entry Point.

This is the main application file for the TripTrace backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from triptrace.app.core.config import settings
from triptrace.app.api.v1.router import router as api_v1_router
from triptrace.app.core.observability import ObservabilityMiddleware, configure_logging
from triptrace.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from triptrace.app.services.batch_geocoder import BatchGeocoder
from triptrace.app.services.geocode_cache import GeocodeCache
from triptrace.app.services.geocode_resolver import GeocodeResolver
from triptrace.app.services.selection import SelectionRegistry
from triptrace.app.services.storage_client import HttpRecordStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates the session-wide geocode cache, resolver and storage client.
    2. Closes the HTTP clients on shutdown.
    """
    configure_logging(settings.log_level)

    cache = GeocodeCache(cache_failures=settings.geocode_cache_failures)
    resolver = GeocodeResolver()
    store = HttpRecordStore()

    app.state.geocode_cache = cache
    app.state.batch_geocoder = BatchGeocoder(cache, resolver)
    app.state.record_store = store
    app.state.selection_registry = SelectionRegistry(max_views=settings.selection_max_views)
    yield
    await resolver.aclose()
    await store.aclose()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.api_version,
        debug=settings.debug,
        description="Travel journal history: reverse geocoding, travel paths and map/timeline selection",
        lifespan=lifespan,
    )

    app.add_middleware(ObservabilityMiddleware)

    # Register global exception handlers
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health check endpoint.

        Returns:
            dict: Status and application information
        """
        return {
            "status": "healthy",
            "app_name": settings.app_name,
            "version": settings.api_version,
        }

    @app.get("/", tags=["Root"])
    async def root():
        """
        Root endpoint.

        Returns:
            dict: Welcome message and API documentation links
        """
        return {
            "message": "Welcome to TripTrace Backend API",
            "docs": "/docs",
            "health": "/health",
        }

    # Include API v1 router
    app.include_router(api_v1_router, prefix=f"/{settings.api_version}")
    return app


# Initialize FastAPI application
app = create_app()
