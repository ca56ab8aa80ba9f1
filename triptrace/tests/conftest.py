"""
Centralized Test Configuration.
"""

import asyncio
from datetime import date

import httpx
import pytest
from httpx import AsyncClient, ASGITransport

from triptrace.app.main import app
from triptrace.app.core.dependencies import (
    get_batch_geocoder,
    get_geocode_cache,
    get_record_store,
    get_selection_registry,
)
from triptrace.app.core.exceptions import AuthenticationError, StorageError
from triptrace.app.schemas.geocoding import PlaceResult
from triptrace.app.schemas.travel_record import TravelRecord
from triptrace.app.services.batch_geocoder import BatchGeocoder
from triptrace.app.services.geocode_cache import GeocodeCache
from triptrace.app.services.geocode_resolver import GeocodeResolver
from triptrace.app.services.selection import SelectionRegistry

TEST_USER_ID = "user-1"
TEST_TOKEN = "valid-token"
AUTH_HEADERS = {"Authorization": f"Bearer {TEST_TOKEN}"}

PARIS_PAYLOAD = {
    "display_name": "Tour Eiffel, Paris, Île-de-France, France",
    "address": {
        "tourism": "Tour Eiffel",
        "city": "Paris",
        "state": "Île-de-France",
        "country": "France",
    },
}


def make_record(record_id, travel_date, lat=None, lon=None, location="", user_id=TEST_USER_ID):
    return TravelRecord(
        id=record_id,
        user_id=user_id,
        photo_url=f"https://cdn.example.com/{record_id}.jpg",
        location=location,
        latitude=lat,
        longitude=lon,
        travel_date=travel_date,
    )


# Mock storage collaborator
class MockRecordStore:
    def __init__(self, records=None):
        self.records = list(records or [])
        self.tokens = {TEST_TOKEN: TEST_USER_ID}
        self.fail_listing = False
        self.deleted = []

    async def list_records(self, user_id):
        if self.fail_listing:
            raise StorageError("Failed to load records")
        rows = [r for r in self.records if r.user_id == user_id]
        return sorted(rows, key=lambda r: r.travel_date, reverse=True)

    async def delete_record(self, record_id):
        self.deleted.append(record_id)
        self.records = [r for r in self.records if r.id != record_id]

    async def get_current_user(self, token):
        if token not in self.tokens:
            raise AuthenticationError("You must be logged in to view your travel history")
        return self.tokens[token]


class CountingFetcher:
    """Cache fetcher that records calls and can be held open with `gate`."""

    def __init__(self, result=None, error=None):
        self.calls = []
        self.result = result or PlaceResult(city="Paris", state="Île-de-France", country="France")
        self.error = error
        self.gate = asyncio.Event()
        self.gate.set()

    async def __call__(self, key):
        self.calls.append(key)
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


class ProviderStub:
    """httpx MockTransport handler standing in for the Nominatim endpoint."""

    def __init__(self, payload=None, status_code=200):
        self.payload = PARIS_PAYLOAD if payload is None else payload
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)


@pytest.fixture
def provider():
    return ProviderStub()


@pytest.fixture
async def resolver(provider):
    client = httpx.AsyncClient(transport=httpx.MockTransport(provider))
    resolver = GeocodeResolver(client=client, min_interval_seconds=0)
    yield resolver
    await client.aclose()


@pytest.fixture
def geocode_cache():
    return GeocodeCache()


@pytest.fixture
def batch_geocoder(geocode_cache, resolver):
    return BatchGeocoder(geocode_cache, resolver)


@pytest.fixture
def sample_records():
    return [
        make_record("r-paris", date(2023, 3, 14), 48.8584, 2.2945, location="Eiffel Tower"),
        make_record("r-rome", date(2023, 5, 2), 41.8902, 12.4922, location="Colosseum"),
        make_record("r-home", date(2023, 5, 20), location="Back home"),
        make_record("r-paris-again", date(2024, 1, 8), 48.85843, 2.29452, location="Eiffel again"),
    ]


@pytest.fixture
def record_store(sample_records):
    return MockRecordStore(sample_records)


@pytest.fixture
def selection_registry():
    return SelectionRegistry()


@pytest.fixture
async def client(record_store, geocode_cache, batch_geocoder, selection_registry):
    """Async client for testing."""
    app.dependency_overrides[get_record_store] = lambda: record_store
    app.dependency_overrides[get_geocode_cache] = lambda: geocode_cache
    app.dependency_overrides[get_batch_geocoder] = lambda: batch_geocoder
    app.dependency_overrides[get_selection_registry] = lambda: selection_registry

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}
