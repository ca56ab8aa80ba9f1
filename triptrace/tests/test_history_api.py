"""
Integration tests for the history, selection and geocoding endpoints.
"""

import pytest

from triptrace.app.core.config import settings

from conftest import AUTH_HEADERS


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Correlation-ID" in response.headers


@pytest.mark.asyncio
async def test_history_requires_authentication(client):
    response = await client.get("/v1/history/main")
    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_UNAUTHORIZED"

    response = await client.get("/v1/history/main", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_001"


@pytest.mark.asyncio
async def test_history_view(client, provider):
    response = await client.get("/v1/history/main", headers=AUTH_HEADERS)
    assert response.status_code == 200
    data = response.json()

    assert data["total_count"] == 4
    assert data["mapped_count"] == 3
    # newest first from the collaborator
    assert [r["record"]["id"] for r in data["records"]] == [
        "r-paris-again", "r-home", "r-rome", "r-paris",
    ]
    labels = {r["record"]["id"]: r["label"] for r in data["records"]}
    assert labels["r-home"] == "Back home"
    assert labels["r-paris"] == "Paris, Île-de-France"

    # two distinct quantized coordinates -> two provider calls
    assert len(provider.requests) == 2

    # timeline groups newest first
    assert [g["key"] for g in data["timeline"]] == ["2024-01", "2023-05", "2023-03"]
    assert data["timeline"][1]["label"] == "May 2023"
    assert [r["record"]["id"] for r in data["timeline"][1]["records"]] == ["r-home", "r-rome"]

    # map: chronological, geotagged only
    assert [r["record"]["id"] for r in data["mapped"]] == ["r-paris", "r-rome", "r-paris-again"]
    assert [p["record_id"] for p in data["path"]["points"]] == ["r-paris", "r-rome", "r-paris-again"]
    assert data["path"]["total_distance_km"] > 2000
    assert data["bounds"]["north"] == pytest.approx(48.85843)
    assert data["highlighted_record_id"] is None


@pytest.mark.asyncio
async def test_history_listing_failure_is_reported(client, record_store):
    record_store.fail_listing = True

    response = await client.get("/v1/history/main", headers=AUTH_HEADERS)

    assert response.status_code == 502
    assert response.json()["error_code"] == "ERR_STORAGE_001"


@pytest.mark.asyncio
async def test_history_renders_when_provider_is_down(client, provider):
    provider.status_code = 503

    response = await client.get("/v1/history/main", headers=AUTH_HEADERS)

    assert response.status_code == 200
    labels = {r["record"]["id"]: r["label"] for r in response.json()["records"]}
    assert labels["r-paris"] == "48.8584, 2.2945"
    assert labels["r-rome"] == "41.8902, 12.4922"


@pytest.mark.asyncio
async def test_selection_round_trip(client):
    response = await client.post(
        "/v1/history/main/selection",
        json={"record_id": "r-rome", "source": "MAP"},
        headers=AUTH_HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["highlighted_record_id"] == "r-rome"
    assert response.json()["event"]["signal"] == "SCROLL_INTO_VIEW"

    history = await client.get("/v1/history/main", headers=AUTH_HEADERS)
    assert history.json()["highlighted_record_id"] == "r-rome"

    response = await client.post(
        "/v1/history/main/selection",
        json={"record_id": "r-rome", "source": "TIMELINE"},
        headers=AUTH_HEADERS,
    )
    assert response.json()["highlighted_record_id"] == "r-rome"
    assert response.json()["event"]["signal"] == "OPEN_POPUP"

    response = await client.delete("/v1/history/main/selection", headers=AUTH_HEADERS)
    assert response.json()["highlighted_record_id"] is None

    response = await client.get("/v1/history/main/selection", headers=AUTH_HEADERS)
    assert response.json()["highlighted_record_id"] is None


@pytest.mark.asyncio
async def test_stale_selection_is_not_reported(client):
    await client.post(
        "/v1/history/main/selection",
        json={"record_id": "deleted-elsewhere", "source": "TIMELINE"},
        headers=AUTH_HEADERS,
    )

    history = await client.get("/v1/history/main", headers=AUTH_HEADERS)

    assert history.status_code == 200
    assert history.json()["highlighted_record_id"] is None


@pytest.mark.asyncio
async def test_invalid_selection_source_rejected(client):
    response = await client.post(
        "/v1/history/main/selection",
        json={"record_id": "r-rome", "source": "GALLERY"},
        headers=AUTH_HEADERS,
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_delete_record_clears_highlight(client, record_store, selection_registry):
    await client.post(
        "/v1/history/main/selection",
        json={"record_id": "r-rome", "source": "MAP"},
        headers=AUTH_HEADERS,
    )

    response = await client.delete("/v1/records/r-rome", headers=AUTH_HEADERS)

    assert response.status_code == 204
    assert record_store.deleted == ["r-rome"]
    assert selection_registry.find("user-1", "main").highlighted is None


@pytest.mark.asyncio
async def test_delete_unknown_record(client, record_store):
    response = await client.delete("/v1/records/missing", headers=AUTH_HEADERS)

    assert response.status_code == 404
    assert record_store.deleted == []


@pytest.mark.asyncio
async def test_reverse_geocode_endpoint(client, provider):
    params = {"lat": 48.85843, "lon": 2.29452}

    first = await client.get("/v1/geocode/reverse", params=params, headers=AUTH_HEADERS)
    second = await client.get("/v1/geocode/reverse", params=params, headers=AUTH_HEADERS)

    assert first.status_code == 200
    assert first.json()["key"] == "48.8584,2.2945"
    assert first.json()["label"] == "Paris, Île-de-France"
    assert second.json() == first.json()
    assert len(provider.requests) == 1


@pytest.mark.asyncio
async def test_reverse_geocode_rejects_out_of_range(client):
    response = await client.get(
        "/v1/geocode/reverse", params={"lat": 123, "lon": 0}, headers=AUTH_HEADERS
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_clear_cache_endpoint(client, provider):
    params = {"lat": 41.8902, "lon": 12.4922}
    await client.get("/v1/geocode/reverse", params=params, headers=AUTH_HEADERS)

    stats = await client.get("/v1/geocode/cache", headers=AUTH_HEADERS)
    assert stats.json()["entries"] == 1

    cleared = await client.delete("/v1/geocode/cache", headers=AUTH_HEADERS)
    assert cleared.json()["entries"] == 0

    await client.get("/v1/geocode/reverse", params=params, headers=AUTH_HEADERS)
    assert len(provider.requests) == 2


@pytest.mark.asyncio
async def test_reads_do_not_create_selection_state(client, selection_registry):
    await client.get("/v1/history/tab-1", headers=AUTH_HEADERS)
    response = await client.get("/v1/history/tab-2/selection", headers=AUTH_HEADERS)

    assert response.json()["highlighted_record_id"] is None
    assert len(selection_registry) == 0


@pytest.mark.asyncio
async def test_clearing_selection_releases_view_state(client, selection_registry):
    await client.post(
        "/v1/history/main/selection",
        json={"record_id": "r-rome", "source": "TIMELINE"},
        headers=AUTH_HEADERS,
    )
    assert len(selection_registry) == 1

    response = await client.delete("/v1/history/main/selection", headers=AUTH_HEADERS)

    assert response.json()["event"]["signal"] == "CLEARED"
    assert len(selection_registry) == 0


@pytest.mark.asyncio
async def test_clear_cache_disabled_outside_debug(client, provider, geocode_cache, monkeypatch):
    monkeypatch.setattr(settings, "debug", False)
    await client.get("/v1/geocode/reverse", params={"lat": 41.8902, "lon": 12.4922}, headers=AUTH_HEADERS)

    response = await client.delete("/v1/geocode/cache", headers=AUTH_HEADERS)

    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_FORBIDDEN"
    assert len(geocode_cache) == 1
