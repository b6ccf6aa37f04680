import json

import pytest
from fastapi.testclient import TestClient

from api import app, get_tools


@pytest.fixture
def client(booking_tools):
    app.dependency_overrides[get_tools] = lambda: booking_tools
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_and_ping(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/ping").json() == {"ok": True}


def test_tool_call_requires_tool_name(client):
    resp = client.post("/tools", json={"parameters": {}})
    assert resp.status_code == 400


def test_tool_call_round_trip(client):
    resp = client.post("/tools", json={
        "tool_name": "search_providers",
        "tool_call_id": "call_123",
        "parameters": {"service_type": "haircut", "preferred_date": "2026-02-10", "preferred_time": "13:00"},
    })

    assert resp.status_code == 200
    body = resp.json()
    assert body["tool_call_id"] == "call_123"
    result = json.loads(body["result"])
    assert [m["id"] for m in result["top_matches"]] == ["hair_001", "hair_002"]


def test_unknown_tool_is_reported_in_result(client):
    body = client.post("/tools", json={"tool_name": "order_pizza"}).json()
    assert json.loads(body["result"]) == {"error": "Unknown tool: order_pizza"}


def test_booking_requires_core_params(client):
    resp = client.post("/booking", json={"serviceType": "dentist"})
    assert resp.status_code == 400


def test_booking_ranks_top_three(client):
    resp = client.post("/booking", json={
        "serviceType": "dentist",
        "preferredDate": "2026-02-10",
        "preferredTime": "10:00",
        "userLocation": "Back Bay",
    })

    assert resp.status_code == 200
    body = resp.json()
    assert [m["id"] for m in body["top_matches"]] == ["dent_002", "dent_001", "dent_003"]
    assert body["intent"]["preferred_time_range"] == {"start": "2026-02-10T10:00:00", "end": "2026-02-10T11:00:00"}
    assert "Back Bay" in body["message"]


def test_swarm_endpoint(client):
    resp = client.post("/swarm", json={
        "service_type": "physical therapy",
        "preferred_date": "2026-02-10",
        "preferred_time": "10:00",
        "max_concurrent_calls": 1,
    })

    assert resp.status_code == 200
    swarm = resp.json()["swarm"]
    assert swarm["swarm_completed"]
    assert swarm["best_match"]["provider_id"] == "pt_001"
    assert swarm["cancelled"] == 1
