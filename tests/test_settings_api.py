from conftest import bearer, register


def test_get_settings(client, operator):
    response = client.get("/api/v1/settings", headers=bearer(operator["token"]))
    assert response.status_code == 200
    assert response.get_json()["data"] == {
        "username": "grower",
        "email": "grower@example.com",
        "theme": "light",
        "role": "user",
        "status": "active",
    }


def test_change_username(client, operator):
    headers = bearer(operator["token"])
    response = client.put("/api/v1/settings/username", json={"newUsername": "planter"}, headers=headers)

    assert response.status_code == 200
    assert response.get_json()["data"] == {"username": "planter"}
    assert client.get("/api/v1/auth/me", headers=headers).get_json()["data"]["username"] == "planter"


def test_username_taken_conflicts(client, head_admin, operator):
    response = client.put("/api/v1/settings/username", json={"newUsername": "root"}, headers=bearer(operator["token"]))
    assert response.status_code == 409


def test_theme_must_be_known(client, operator):
    response = client.put("/api/v1/settings/theme", json={"theme": "neon"}, headers=bearer(operator["token"]))
    assert response.status_code == 400


def test_restricted_account_changes_theme_but_not_username(client, head_admin):
    viewer = register(client, "viewer")
    client.put(
        f"/api/v1/admin/users/{viewer['user']['id']}/restrict",
        json={"restricted": True},
        headers=bearer(head_admin["token"]),
    )
    headers = bearer(viewer["token"])

    theme = client.put("/api/v1/settings/theme", json={"theme": "dark"}, headers=headers)
    assert theme.status_code == 200
    assert theme.get_json()["data"] == {"theme": "dark"}

    rename = client.put("/api/v1/settings/username", json={"newUsername": "sneaky"}, headers=headers)
    assert rename.status_code == 403
