"""
Configuration settings for the TripTrace backend.

This module handles application configuration using Pydantic settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "TripTrace Backend"
    api_version: str = "v1"
    debug: bool = True
    log_level: str = "INFO"

    # Storage / Auth collaborator
    storage_url: str = "http://localhost:7130"
    storage_api_key: Optional[str] = None
    storage_timeout_seconds: float = 15.0

    # Reverse Geocoding Provider (Nominatim)
    geocoder_url: str = "https://nominatim.openstreetmap.org/reverse"
    geocoder_user_agent: str = "TripTrace/1.0"
    geocoder_language: str = "en"
    geocoder_timeout_seconds: float = 10.0
    geocoder_min_interval_seconds: float = 1.0  # Nominatim usage policy: 1 req/s
    geocoder_circuit_threshold: int = 5
    geocoder_circuit_reset_seconds: int = 60

    # Geocode Cache
    geocode_cache_failures: bool = True

    # Selection state (one coordinator per open history view)
    selection_max_views: int = 10000

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
