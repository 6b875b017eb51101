from app.schemas.user.profile import DEFAULT_SETTINGS

PASSWORD = "s3cret-pass"


async def test_get_and_update_profile(client, student_headers):
    res = await client.put(
        "/api/v1/profile", json={"name": "Emmy", "bio": "Rings"}, headers=student_headers
    )

    assert res.status_code == 200
    assert res.json()["data"]["name"] == "Emmy"
    profile = await client.get("/api/v1/profile", headers=student_headers)
    assert profile.json()["data"]["bio"] == "Rings"
    assert profile.json()["data"]["email"] == "student@example.com"


async def test_profile_update_rejects_protected_fields(client, student_headers):
    res = await client.put("/api/v1/profile", json={"role": "admin"}, headers=student_headers)

    assert res.status_code == 400
    profile = await client.get("/api/v1/profile", headers=student_headers)
    assert profile.json()["data"]["role"] == "user"


async def test_change_password_requires_current_and_logs_out(client, student, student_headers):
    wrong = await client.put(
        "/api/v1/profile/password",
        json={"current_password": "nope-nope", "new_password": "another-secret"},
        headers=student_headers,
    )
    assert wrong.status_code == 400
    assert wrong.json()["error_code"] == "INVALID_PASSWORD"

    res = await client.put(
        "/api/v1/profile/password",
        json={"current_password": PASSWORD, "new_password": "another-secret"},
        headers=student_headers,
    )
    assert res.status_code == 200

    assert (await client.get("/api/v1/profile", headers=student_headers)).status_code == 401
    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "student@example.com", "password": "another-secret"},
    )
    assert login.status_code == 200


async def test_settings_merge_with_defaults(client, student_headers):
    initial = await client.get("/api/v1/profile/settings", headers=student_headers)
    assert initial.json()["data"] == DEFAULT_SETTINGS

    res = await client.put(
        "/api/v1/profile/settings",
        json={"dark_mode": True, "download_quality": "Low"},
        headers=student_headers,
    )

    data = res.json()["data"]
    assert data["dark_mode"] is True
    assert data["download_quality"] == "Low"
    assert data["language"] == "en"

    again = await client.get("/api/v1/profile/settings", headers=student_headers)
    assert again.json()["data"] == data


async def test_settings_reject_unknown_keys_and_values(client, student_headers):
    unknown = await client.put(
        "/api/v1/profile/settings", json={"theme": "neon"}, headers=student_headers
    )
    bad_value = await client.put(
        "/api/v1/profile/settings", json={"download_quality": "Ultra"}, headers=student_headers
    )

    assert unknown.status_code == 400
    assert bad_value.status_code == 400


async def test_avatar_upload(client, student_headers, store):
    res = await client.put(
        "/api/v1/profile/avatar",
        files={"file": ("me.png", b"\x89PNG avatar", "image/png")},
        headers=student_headers,
    )

    assert res.status_code == 200
    path = res.json()["data"]["avatar_path"]
    assert path.startswith("users/avatars/")
    assert store.resolve(path).read_bytes() == b"\x89PNG avatar"

    rejected = await client.put(
        "/api/v1/profile/avatar",
        files={"file": ("me.txt", b"hello", "text/plain")},
        headers=student_headers,
    )
    assert rejected.status_code == 400


async def test_delete_account(client, student_headers):
    wrong = await client.request(
        "DELETE", "/api/v1/profile", json={"password": "wrong-one"}, headers=student_headers
    )
    assert wrong.status_code == 400

    res = await client.request(
        "DELETE", "/api/v1/profile", json={"password": PASSWORD}, headers=student_headers
    )
    assert res.status_code == 200
    assert (await client.get("/api/v1/profile", headers=student_headers)).status_code == 401


async def test_admin_cannot_delete_own_account(client, admin_headers):
    res = await client.request(
        "DELETE", "/api/v1/profile", json={"password": PASSWORD}, headers=admin_headers
    )

    assert res.status_code == 403
