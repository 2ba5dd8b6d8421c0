import pytest

from conftest import PI_KEY

PI_HEADERS = {"X-API-Key": PI_KEY}


@pytest.mark.parametrize("path", ["/api/v1/pi/readings", "/api/v1/pi/events", "/api/v1/pi/heartbeat", "/api/v1/pi/alerts"])
def test_ingestion_requires_device_key(client, path):
    assert client.post(path, json={}).status_code == 401
    assert client.post(path, json={}, headers={"X-API-Key": "wrong"}).status_code == 401


def test_readings_batch(client):
    response = client.post(
        "/api/v1/pi/readings",
        json={"readings": [{"temp": 20, "soil1": 33}, {"temp": 21, "dht22": {"temp": 21.2, "hum": 58}}]},
        headers=PI_HEADERS,
    )
    assert response.status_code == 200
    assert response.get_json()["data"] == {"count": 2}


def test_malformed_batch_stores_nothing(client, container):
    response = client.post(
        "/api/v1/pi/readings", json={"readings": [{"temp": 20}, {"temp": "warm"}]}, headers=PI_HEADERS
    )
    assert response.status_code == 400
    assert response.get_json()["error"]["kind"] == "ValidationError"
    assert container.telemetry_repo.latest_reading() is None


def test_missing_array_is_rejected(client):
    response = client.post("/api/v1/pi/events", json={"event": "pump_on"}, headers=PI_HEADERS)
    assert response.status_code == 400
    assert response.get_json()["message"] == "Events array required"


def test_events_and_alerts(client, container):
    events = client.post(
        "/api/v1/pi/events", json={"events": [{"event": "fan_on", "reason": "temp high"}]}, headers=PI_HEADERS
    )
    alerts = client.post(
        "/api/v1/pi/alerts",
        json={"alerts": [{"level": "CRITICAL", "message": "arduino disconnected", "timestamp": "2024-01-01T00:00:00Z"}]},
        headers=PI_HEADERS,
    )

    assert events.get_json()["data"] == {"count": 1}
    assert alerts.get_json()["data"] == {"count": 1}
    [stored] = container.alert_repo.newest()
    assert stored["source"] == "pi"
    assert stored["timestamp"] == "2024-01-01T00:00:00+00:00"


def test_heartbeat_returns_snapshot(client):
    response = client.post(
        "/api/v1/pi/heartbeat",
        json={"arduino_connected": True, "backend_reachable": True, "pending_readings": 4},
        headers=PI_HEADERS,
    )
    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["arduino_connected"] is True
    assert data["pending_readings"] == 4
