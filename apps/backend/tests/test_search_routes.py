"""API tests for the search session routes."""

import json

import pytest

from routes.rate_limit import RATE_LIMIT_MAX


async def _create(client) -> str:
    response = await client.post("/api/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


@pytest.mark.asyncio
async def test_create_session(client):
    response = await client.post("/api/sessions")
    assert response.status_code == 201
    data = response.json()
    assert data["view_mode"] == "search"
    assert data["packages"] == []
    assert data["loading"] is False


@pytest.mark.asyncio
async def test_unknown_session_404(client):
    response = await client.get("/api/sessions/does-not-exist")
    assert response.status_code == 404
    assert response.json()["error"] == "ResourceNotFoundError"


@pytest.mark.asyncio
async def test_search_returns_merged_snapshot(client):
    session_id = await _create(client)
    response = await client.post(f"/api/sessions/{session_id}/search", json={"destination": "Goa"})

    assert response.status_code == 200
    data = response.json()
    assert data["destination"] == "Goa"
    assert data["view_mode"] == "results"
    assert data["error"] is None
    assert data["total_packages"] == 5
    assert data["source_count"] == 5
    statuses = [s["status"] for s in data["source_status"].values()]
    assert statuses.count("success") == 5
    assert statuses.count("error") == 1
    prices = [p["price"] for p in data["packages"]]
    assert prices == sorted(prices)


@pytest.mark.asyncio
async def test_blank_destination_is_400(client, goa_sources):
    session_id = await _create(client)
    response = await client.post(f"/api/sessions/{session_id}/search", json={"destination": "   "})

    assert response.status_code == 400
    assert response.json()["message"] == "Please enter a destination"
    assert all(s.calls == [] for s in goa_sources)


@pytest.mark.asyncio
async def test_view_update_and_read_overrides(client):
    session_id = await _create(client)
    await client.post(f"/api/sessions/{session_id}/search", json={"destination": "Goa"})

    response = await client.patch(f"/api/sessions/{session_id}/view", json={"sort_key": "rating", "min_rating": 4})
    data = response.json()
    assert response.status_code == 200
    assert data["sort_key"] == "rating"
    assert all(p["rating"] >= 4 for p in data["packages"])
    ratings = [p["rating"] for p in data["packages"]]
    assert ratings == sorted(ratings, reverse=True)
    assert data["total_packages"] == 5

    override = (await client.get(f"/api/sessions/{session_id}", params={"sort_key": "price", "min_rating": 0})).json()
    assert override["sort_key"] == "price"
    assert len(override["packages"]) == 5

    stored = (await client.get(f"/api/sessions/{session_id}")).json()
    assert stored["sort_key"] == "rating"


@pytest.mark.asyncio
async def test_invalid_view_update_is_400(client):
    session_id = await _create(client)
    response = await client.patch(f"/api/sessions/{session_id}/view", json={"sort_key": "name"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_refresh_and_back(client, goa_sources):
    session_id = await _create(client)

    noop = await client.post(f"/api/sessions/{session_id}/refresh")
    assert noop.json()["generation"] == 0

    await client.post(f"/api/sessions/{session_id}/search", json={"destination": "Goa"})
    refreshed = (await client.post(f"/api/sessions/{session_id}/refresh")).json()
    assert refreshed["generation"] == 2
    assert goa_sources[0].calls == ["Goa", "Goa"]

    back = (await client.post(f"/api/sessions/{session_id}/back")).json()
    assert back["view_mode"] == "search"
    assert back["destination"] == "Goa"
    assert back["total_packages"] == 5


@pytest.mark.asyncio
async def test_stream_emits_source_then_complete_events(client):
    session_id = await _create(client)
    response = await client.post(f"/api/sessions/{session_id}/search/stream", json={"destination": "Goa"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = [
        json.loads(line[len("data: "):])
        for line in response.text.splitlines()
        if line.startswith("data: ")
    ]
    assert [e["event"] for e in events] == ["source"] * 6 + ["complete"]
    assert events[-1]["session"]["total_packages"] == 5


@pytest.mark.asyncio
async def test_delete_session(client):
    session_id = await _create(client)
    assert (await client.delete(f"/api/sessions/{session_id}")).status_code == 204
    assert (await client.get(f"/api/sessions/{session_id}")).status_code == 404


@pytest.mark.asyncio
async def test_view_options(client):
    data = (await client.get("/api/sessions/options")).json()
    assert data["sort_keys"] == ["price", "rating", "duration"]
    assert data["rating_options"] == [0, 3, 4, 4.5]


@pytest.mark.asyncio
async def test_search_rate_limited(client, monkeypatch):
    monkeypatch.setitem(RATE_LIMIT_MAX, "search", 2)
    session_id = await _create(client)
    for _ in range(2):
        ok = await client.post(f"/api/sessions/{session_id}/search", json={"destination": "Goa"})
        assert ok.status_code == 200

    limited = await client.post(f"/api/sessions/{session_id}/search", json={"destination": "Goa"})
    assert limited.status_code == 429
    assert limited.headers["Retry-After"] == "60"
