import pytest

from conftest import PI_KEY, bearer, register


@pytest.fixture()
def admin(client, head_admin, operator):
    """``grower`` promoted to admin by the head admin."""
    client.put(f"/api/v1/admin/users/{operator['user']['id']}/promote", headers=bearer(head_admin["token"]))
    return operator


@pytest.fixture()
def publish_to_spy(container, monkeypatch):
    calls = []
    original = container.broadcast_bus.publish_to

    def spy(connection, topic, payload=None):
        calls.append((connection, topic, payload))
        return original(connection, topic, payload)

    monkeypatch.setattr(container.broadcast_bus, "publish_to", spy)
    return calls


def _connect(app, token):
    from app.extensions import socketio

    return socketio.test_client(app, auth={"token": token})


# ==================== USERS ====================


def test_regular_user_cannot_use_admin_endpoints(client, operator):
    response = client.get("/api/v1/admin/users", headers=bearer(operator["token"]))
    assert response.status_code == 403


def test_list_users_reports_live_presence(app, client, head_admin, operator):
    live = _connect(app, operator["token"])
    try:
        response = client.get("/api/v1/admin/users", headers=bearer(head_admin["token"]))
        data = response.get_json()["data"]
        assert data["count"] == 2
        by_name = {user["username"]: user for user in data["users"]}
        assert by_name["grower"]["isOnline"] is True
        assert by_name["root"]["isOnline"] is False

        online = client.get("/api/v1/admin/users/online", headers=bearer(head_admin["token"])).get_json()["data"]
        assert [user["username"] for user in online["users"]] == ["grower"]
    finally:
        live.disconnect()


def test_ban_sends_exactly_one_force_disconnect(app, client, container, head_admin, operator, publish_to_spy):
    live = _connect(app, operator["token"])
    assert live.is_connected()
    user_id = operator["user"]["id"]

    response = client.put(f"/api/v1/admin/users/{user_id}/ban", json={"banned": True}, headers=bearer(head_admin["token"]))

    assert response.status_code == 200
    assert response.get_json()["data"]["status"] == "banned"
    notices = [call for call in publish_to_spy if call[1] == "force_disconnect"]
    assert len(notices) == 1
    assert notices[0][2] == {"reason": "Your account has been banned"}
    assert not container.presence.is_online(user_id)
    assert container.broadcast_bus.live_connections() == []


def test_ban_closes_every_session_of_the_account(app, client, container, head_admin, operator, publish_to_spy):
    user_id = operator["user"]["id"]
    first = _connect(app, operator["token"])
    second = _connect(app, operator["token"])
    current = container.presence.connection_of(user_id)
    assert len(container.broadcast_bus.connections_for(user_id)) == 2

    response = client.put(f"/api/v1/admin/users/{user_id}/ban", json={"banned": True}, headers=bearer(head_admin["token"]))
    assert response.status_code == 200

    notices = [call for call in publish_to_spy if call[1] == "force_disconnect"]
    assert [call[0] for call in notices] == [current]
    assert container.broadcast_bus.connections_for(user_id) == []
    assert not first.is_connected()
    assert not second.is_connected()
    assert not container.presence.is_online(user_id)

    heartbeat = client.post("/api/v1/pi/heartbeat", json={"arduino_connected": True}, headers={"X-API-Key": PI_KEY})
    assert heartbeat.status_code == 200
    assert container.broadcast_bus.live_connections() == []


def test_delete_closes_older_sessions_too(app, client, container, head_admin, operator):
    user_id = operator["user"]["id"]
    sessions = [_connect(app, operator["token"]) for _ in range(2)]

    response = client.delete(f"/api/v1/admin/users/{user_id}", headers=bearer(head_admin["token"]))

    assert response.status_code == 200
    assert container.broadcast_bus.connections_for(user_id) == []
    assert not any(live.is_connected() for live in sessions)


def test_ban_of_offline_user_sends_nothing(client, head_admin, operator, publish_to_spy):
    response = client.put(
        f"/api/v1/admin/users/{operator['user']['id']}/ban", json={"banned": True}, headers=bearer(head_admin["token"])
    )
    assert response.status_code == 200
    assert publish_to_spy == []


def test_unban_restores_access(client, head_admin, operator):
    url = f"/api/v1/admin/users/{operator['user']['id']}/ban"
    client.put(url, json={"banned": True}, headers=bearer(head_admin["token"]))
    response = client.put(url, json={"banned": False}, headers=bearer(head_admin["token"]))

    assert response.get_json()["data"]["status"] == "active"
    assert client.get("/api/v1/auth/me", headers=bearer(operator["token"])).status_code == 200


def test_ban_requires_boolean(client, head_admin, operator):
    response = client.put(
        f"/api/v1/admin/users/{operator['user']['id']}/ban", json={"banned": "yes"}, headers=bearer(head_admin["token"])
    )
    assert response.status_code == 400


def test_head_admin_is_protected(client, head_admin, admin):
    root_id = head_admin["user"]["id"]
    for method, path, body in (
        ("put", f"/api/v1/admin/users/{root_id}/ban", {"banned": True}),
        ("put", f"/api/v1/admin/users/{root_id}/restrict", {"restricted": True}),
        ("delete", f"/api/v1/admin/users/{root_id}", None),
    ):
        response = getattr(client, method)(path, json=body, headers=bearer(admin["token"]))
        assert response.status_code == 403, path

    own = client.delete(f"/api/v1/admin/users/{root_id}", headers=bearer(head_admin["token"]))
    assert own.status_code == 403


def test_admins_cannot_be_banned(client, head_admin, admin):
    response = client.put(
        f"/api/v1/admin/users/{admin['user']['id']}/ban", json={"banned": True}, headers=bearer(head_admin["token"])
    )
    assert response.status_code == 403


def test_delete_user(client, head_admin, operator, container):
    response = client.delete(f"/api/v1/admin/users/{operator['user']['id']}", headers=bearer(head_admin["token"]))
    assert response.status_code == 200
    assert container.user_repo.get(operator["user"]["id"]) is None
    assert client.get("/api/v1/auth/me", headers=bearer(operator["token"])).status_code == 401

    missing = client.delete(f"/api/v1/admin/users/{operator['user']['id']}", headers=bearer(head_admin["token"]))
    assert missing.status_code == 404


def test_only_head_admin_deletes_admins(client, head_admin, admin):
    other = register(client, "helper")
    client.put(f"/api/v1/admin/users/{other['user']['id']}/promote", headers=bearer(head_admin["token"]))

    response = client.delete(f"/api/v1/admin/users/{other['user']['id']}", headers=bearer(admin["token"]))
    assert response.status_code == 403
    response = client.delete(f"/api/v1/admin/users/{other['user']['id']}", headers=bearer(head_admin["token"]))
    assert response.status_code == 200


# ==================== ROLES ====================


def test_promote_and_demote(client, head_admin, operator):
    user_id = operator["user"]["id"]
    headers = bearer(head_admin["token"])

    promoted = client.put(f"/api/v1/admin/users/{user_id}/promote", headers=headers)
    assert promoted.get_json()["data"]["role"] == "admin"
    assert client.put(f"/api/v1/admin/users/{user_id}/promote", headers=headers).status_code == 400

    demoted = client.put(f"/api/v1/admin/users/{user_id}/demote", headers=headers)
    assert demoted.get_json()["data"]["role"] == "user"
    assert client.put(f"/api/v1/admin/users/{user_id}/demote", headers=headers).status_code == 400


def test_admin_cannot_change_roles(client, head_admin, admin):
    newcomer = register(client, "newcomer")
    response = client.put(f"/api/v1/admin/users/{newcomer['user']['id']}/promote", headers=bearer(admin["token"]))
    assert response.status_code == 403


def test_head_admin_cannot_be_demoted(client, head_admin):
    response = client.put(f"/api/v1/admin/users/{head_admin['user']['id']}/demote", headers=bearer(head_admin["token"]))
    assert response.status_code == 403


# ==================== ACTIVITY / PASSWORD REQUESTS / ALERTS ====================


def test_activity_trail_lists_recent_actions(client, head_admin, operator):
    client.put("/api/v1/thresholds", json={"soil1": 50}, headers=bearer(operator["token"]))

    data = client.get("/api/v1/admin/activity/24h", headers=bearer(head_admin["token"])).get_json()["data"]
    actions = [entry["action"] for entry in data["activity"]]
    assert "threshold_changed" in actions
    assert "user_created" in actions
    assert data["count"] == len(data["activity"])


def test_password_reset_review(client, head_admin, operator):
    headers = bearer(head_admin["token"])
    client.post("/api/v1/auth/forgot-password", json={"username": "grower", "message": "help"})

    pending = client.get("/api/v1/admin/forgot-password/pending", headers=headers).get_json()["data"]
    assert pending["count"] == 1
    request_id = pending["requests"][0]["id"]
    assert pending["requests"][0]["rememberedPasswordMatches"] is None

    approve = client.post(
        f"/api/v1/admin/forgot-password/{request_id}/approve", json={"newPassword": "reset-pass"}, headers=headers
    )
    assert approve.status_code == 200
    assert client.post("/api/v1/auth/login", json={"username": "grower", "password": "reset-pass"}).status_code == 200

    again = client.post(f"/api/v1/admin/forgot-password/{request_id}/reject", headers=headers)
    assert again.status_code == 400
    assert client.post("/api/v1/admin/forgot-password/999/reject", headers=headers).status_code == 404


def test_reject_password_request(client, head_admin, operator):
    headers = bearer(head_admin["token"])
    client.post("/api/v1/auth/forgot-password", json={"username": "grower"})
    request_id = client.get("/api/v1/admin/forgot-password/pending", headers=headers).get_json()["data"]["requests"][0]["id"]

    assert client.post(f"/api/v1/admin/forgot-password/{request_id}/reject", headers=headers).status_code == 200
    assert client.get("/api/v1/admin/forgot-password/pending", headers=headers).get_json()["data"]["count"] == 0


def test_alerts_list_and_acknowledge(client, head_admin):
    headers = bearer(head_admin["token"])
    client.post(
        "/api/v1/pi/alerts", json={"alerts": [{"level": "ERROR", "message": "sensor fault"}]}, headers={"X-API-Key": PI_KEY}
    )

    alerts = client.get("/api/v1/admin/alerts", headers=headers).get_json()["data"]["alerts"]
    assert alerts[0]["acknowledged"] is False

    ack = client.put(f"/api/v1/admin/alerts/{alerts[0]['id']}/acknowledge", headers=headers)
    assert ack.status_code == 200
    alerts = client.get("/api/v1/admin/alerts", headers=headers).get_json()["data"]["alerts"]
    assert alerts[0]["acknowledged"] is True
    assert client.put("/api/v1/admin/alerts/999/acknowledge", headers=headers).status_code == 404
