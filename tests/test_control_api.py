import pytest

from conftest import PI_KEY, bearer, register


@pytest.fixture()
def viewer(client, head_admin):
    account = register(client, "viewer")
    client.put(
        f"/api/v1/admin/users/{account['user']['id']}/restrict",
        json={"restricted": True},
        headers=bearer(head_admin["token"]),
    )
    return account


# ==================== THRESHOLDS ====================


def test_read_thresholds_defaults(client, operator):
    response = client.get("/api/v1/thresholds", headers=bearer(operator["token"]))
    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["soil1"] == 60
    assert data["lastSyncedAt"] is None


def test_update_thresholds_relays_and_reports_sync(client, operator, fake_relay):
    response = client.put("/api/v1/thresholds", json={"soil1": 45, "ignored": "x"}, headers=bearer(operator["token"]))

    assert response.status_code == 200
    body = response.get_json()
    assert body["data"]["changed"] == {"soil1": 45.0}
    assert body["data"]["sync"] == {"relayed": True}
    assert body["data"]["thresholds"]["soil1"] == 45.0
    assert body["data"]["thresholds"]["lastSyncedAt"]
    assert body["data"]["thresholds"]["lastUpdatedBy"] == operator["user"]["id"]
    assert fake_relay.calls == [("push_thresholds", {"soil1": 45.0})]


def test_update_thresholds_survives_unreachable_controller(client, operator, fake_relay):
    fake_relay.failure = "timeout"

    response = client.put("/api/v1/thresholds", json={"temp_high": 30}, headers=bearer(operator["token"]))

    assert response.status_code == 200
    sync = response.get_json()["data"]["sync"]
    assert sync["relayed"] is False
    assert sync["kind"] == "RelayTimeout"
    assert sync["warning"]

    stored = client.get("/api/v1/thresholds", headers=bearer(operator["token"])).get_json()["data"]
    assert stored["temp_high"] == 30
    assert stored["lastSyncedAt"] is None


def test_timed_out_update_keeps_last_sync_time(client, operator, fake_relay):
    headers = bearer(operator["token"])
    first = client.put("/api/v1/thresholds", json={"hum_high": 80}, headers=headers).get_json()["data"]
    synced_at = first["thresholds"]["lastSyncedAt"]
    assert synced_at

    fake_relay.failure = "timeout"
    response = client.put("/api/v1/thresholds", json={"hum_high": 75}, headers=headers)

    assert response.status_code == 200
    assert response.get_json()["data"]["sync"]["kind"] == "RelayTimeout"
    stored = client.get("/api/v1/thresholds", headers=headers).get_json()["data"]
    assert stored["hum_high"] == 75
    assert stored["lastSyncedAt"] == synced_at


def test_update_without_valid_values_is_rejected(client, operator, fake_relay):
    response = client.put("/api/v1/thresholds", json={"colour": "green"}, headers=bearer(operator["token"]))
    assert response.status_code == 400
    assert fake_relay.calls == []


def test_non_object_body_is_rejected(client, operator):
    response = client.put("/api/v1/thresholds", json=[1, 2, 3], headers=bearer(operator["token"]))
    assert response.status_code == 400


def test_restricted_account_can_read_but_not_write(client, viewer, fake_relay):
    headers = bearer(viewer["token"])
    assert client.get("/api/v1/thresholds", headers=headers).status_code == 200

    response = client.put("/api/v1/thresholds", json={"soil1": 10}, headers=headers)
    assert response.status_code == 403
    assert response.get_json()["error"]["kind"] == "Forbidden"
    assert fake_relay.calls == []


def test_thresholds_require_authentication(client):
    assert client.get("/api/v1/thresholds").status_code == 401


# ==================== MANUAL CONTROL ====================


def test_manual_command_clamps_pwm(client, operator, fake_relay):
    response = client.post(
        "/api/v1/manual/control",
        json={"actuator": "fan_exhaust", "state": True, "pwm": 300},
        headers=bearer(operator["token"]),
    )

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["pwm"] == 255
    assert data["deviceResponse"] == {"success": True}
    assert fake_relay.calls == [("send_command", {"actuator": "fan_exhaust", "state": True, "pwm": 255})]


def test_manual_command_rejects_unknown_actuator(client, operator, fake_relay):
    response = client.post(
        "/api/v1/manual/control", json={"actuator": "heater", "state": True}, headers=bearer(operator["token"])
    )
    assert response.status_code == 400
    assert "Invalid actuator" in response.get_json()["message"]
    assert fake_relay.calls == []


@pytest.mark.parametrize("failure,status", [("unavailable", 503), ("timeout", 504)])
def test_manual_command_reports_relay_failure(client, operator, fake_relay, failure, status):
    fake_relay.failure = failure
    response = client.post(
        "/api/v1/manual/control", json={"actuator": "pump_water", "state": True}, headers=bearer(operator["token"])
    )
    assert response.status_code == status
    assert response.get_json()["ok"] is False


def test_resume_auto(client, operator, fake_relay):
    response = client.post("/api/v1/manual/auto", headers=bearer(operator["token"]))
    assert response.status_code == 200
    assert response.get_json()["data"]["resumedBy"] == "grower"
    assert fake_relay.calls == [("resume_auto", {})]


def test_restricted_account_cannot_command_actuators(client, viewer):
    response = client.post(
        "/api/v1/manual/control", json={"actuator": "pump_water", "state": True}, headers=bearer(viewer["token"])
    )
    assert response.status_code == 403


# ==================== SENSORS ====================


def test_latest_reading_before_and_after_upload(client, operator):
    headers = bearer(operator["token"])
    assert client.get("/api/v1/sensors/latest", headers=headers).status_code == 404

    client.post("/api/v1/pi/readings", json={"readings": [{"temp": 21.5, "hum": 60}]}, headers={"X-API-Key": PI_KEY})

    response = client.get("/api/v1/sensors/latest", headers=headers)
    assert response.status_code == 200
    assert response.get_json()["data"]["temp"] == 21.5


def test_device_status_is_null_until_first_heartbeat(client, operator):
    headers = bearer(operator["token"])
    assert client.get("/api/v1/sensors/status", headers=headers).get_json()["data"] is None

    client.post("/api/v1/pi/heartbeat", json={"arduino_connected": True}, headers={"X-API-Key": PI_KEY})
    status = client.get("/api/v1/sensors/status", headers=headers).get_json()["data"]
    assert status["arduino_connected"] is True
    assert status["lastHeartbeat"]
