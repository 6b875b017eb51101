from app.core.enum import UserStatus

REGISTER = {"name": "Alice", "email": "Alice@Example.com", "password": "correct-horse"}


async def register_and_verify(client, mailer, payload=REGISTER):
    res = await client.post("/api/v1/auth/register", json=payload)
    assert res.status_code == 201
    token = mailer.last_token("verify")
    res = await client.post("/api/v1/auth/verify-email", json={"token": token})
    assert res.status_code == 200
    return res.json()["data"]["user"]


async def login(client, email="alice@example.com", password="correct-horse"):
    return await client.post("/api/v1/auth/login", json={"email": email, "password": password})


async def test_register_creates_unverified_user_and_sends_link(client, mailer):
    res = await client.post("/api/v1/auth/register", json=REGISTER)

    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    user = body["data"]["user"]
    assert user["email"] == "alice@example.com"
    assert user["role"] == "user"
    assert user["status"] == UserStatus.UNVERIFIED.value
    assert "password_hash" not in user
    assert mailer.sent[-1]["kind"] == "verify"
    assert mailer.sent[-1]["email"] == "alice@example.com"


async def test_register_duplicate_email_conflicts(client, mailer):
    await client.post("/api/v1/auth/register", json=REGISTER)
    res = await client.post(
        "/api/v1/auth/register", json={**REGISTER, "email": "ALICE@example.com"}
    )

    assert res.status_code == 409
    assert res.json()["error_code"] == "DUPLICATE_IDENTITY"


async def test_register_rejects_short_password(client):
    res = await client.post("/api/v1/auth/register", json={**REGISTER, "password": "short"})

    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["error_code"] == "VALIDATION_ERROR"
    assert any(e["field"] == "password" for e in body["errors"])


async def test_login_requires_verified_email(client, mailer):
    await client.post("/api/v1/auth/register", json=REGISTER)

    res = await login(client)

    assert res.status_code == 403
    assert res.json()["error_code"] == "EMAIL_NOT_VERIFIED"


async def test_verify_then_login_and_me(client, mailer):
    user = await register_and_verify(client, mailer)
    assert user["status"] == "active"
    assert user["email_verified_at"] is not None

    res = await login(client)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["refresh_token"]
    assert "access_token" in res.cookies

    me = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
    )
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "alice@example.com"


async def test_verification_token_is_single_use(client, mailer):
    await client.post("/api/v1/auth/register", json=REGISTER)
    token = mailer.last_token("verify")

    first = await client.post("/api/v1/auth/verify-email", json={"token": token})
    second = await client.post("/api/v1/auth/verify-email", json={"token": token})

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json()["error_code"] == "INVALID_TOKEN"


async def test_resend_verification_invalidates_previous_link(client, mailer):
    await client.post("/api/v1/auth/register", json=REGISTER)
    old_token = mailer.last_token("verify")

    res = await client.post(
        "/api/v1/auth/resend-verification", json={"email": "alice@example.com"}
    )
    assert res.status_code == 200
    new_token = mailer.last_token("verify")
    assert new_token != old_token

    stale = await client.post("/api/v1/auth/verify-email", json={"token": old_token})
    fresh = await client.post("/api/v1/auth/verify-email", json={"token": new_token})
    assert stale.status_code == 400
    assert fresh.status_code == 200


async def test_wrong_password_and_unknown_email_look_the_same(client, mailer):
    await register_and_verify(client, mailer)

    wrong = await login(client, password="not-the-password")
    unknown = await login(client, email="nobody@example.com")

    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json()["error_code"] == unknown.json()["error_code"] == "INVALID_CREDENTIALS"
    assert wrong.json()["message"] == unknown.json()["message"]


async def test_suspended_user_cannot_login(client, make_user):
    await make_user("frozen@example.com", status=UserStatus.SUSPENDED)

    res = await login(client, email="frozen@example.com", password="s3cret-pass")

    assert res.status_code == 403
    assert res.json()["error_code"] == "ACCOUNT_SUSPENDED"


async def test_refresh_rotates_token(client, mailer):
    await register_and_verify(client, mailer)
    tokens = (await login(client)).json()["data"]

    res = await client.post(
        "/api/v1/auth/refresh-token", json={"refresh_token": tokens["refresh_token"]}
    )

    assert res.status_code == 200
    rotated = res.json()["data"]
    assert rotated["refresh_token"] != tokens["refresh_token"]
    assert rotated["access_token"]


async def test_refresh_token_reuse_revokes_every_session(client, mailer):
    await register_and_verify(client, mailer)
    tokens = (await login(client)).json()["data"]
    rotated = (
        await client.post(
            "/api/v1/auth/refresh-token", json={"refresh_token": tokens["refresh_token"]}
        )
    ).json()["data"]

    replay = await client.post(
        "/api/v1/auth/refresh-token", json={"refresh_token": tokens["refresh_token"]}
    )
    assert replay.status_code == 401

    # the legitimate rotated pair is gone too
    follow_up = await client.post(
        "/api/v1/auth/refresh-token", json={"refresh_token": rotated["refresh_token"]}
    )
    assert follow_up.status_code == 401
    me = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {rotated['access_token']}"}
    )
    assert me.status_code == 401


async def test_unknown_refresh_token_is_unauthorized(client):
    res = await client.post("/api/v1/auth/refresh-token", json={"refresh_token": "nope"})

    assert res.status_code == 401
    assert res.json()["error_code"] == "INVALID_TOKEN"


async def test_logout_revokes_refresh_token(client, mailer):
    await register_and_verify(client, mailer)
    tokens = (await login(client)).json()["data"]

    res = await client.post("/api/v1/auth/logout", json={"refresh_token": tokens["refresh_token"]})
    assert res.status_code == 200

    again = await client.post(
        "/api/v1/auth/refresh-token", json={"refresh_token": tokens["refresh_token"]}
    )
    assert again.status_code == 401


async def test_refresh_after_logout_keeps_other_devices_signed_in(client, mailer):
    await register_and_verify(client, mailer)
    laptop = (await login(client)).json()["data"]
    phone = (await login(client)).json()["data"]

    await client.post("/api/v1/auth/logout", json={"refresh_token": laptop["refresh_token"]})
    stale = await client.post(
        "/api/v1/auth/refresh-token", json={"refresh_token": laptop["refresh_token"]}
    )

    assert stale.status_code == 401
    me = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {phone['access_token']}"}
    )
    assert me.status_code == 200
    rotated = await client.post(
        "/api/v1/auth/refresh-token", json={"refresh_token": phone["refresh_token"]}
    )
    assert rotated.status_code == 200


async def test_logout_all_devices_invalidates_access_tokens(client, mailer):
    await register_and_verify(client, mailer)
    tokens = (await login(client)).json()["data"]
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    await client.post(
        "/api/v1/auth/logout",
        json={"refresh_token": tokens["refresh_token"], "all_devices": True},
    )

    assert (await client.get("/api/v1/auth/me", headers=headers)).status_code == 401


async def test_forgot_password_is_silent_for_unknown_email(client, mailer):
    res = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})

    assert res.status_code == 200
    assert mailer.sent == []


async def test_reset_password_flow(client, mailer):
    await register_and_verify(client, mailer)
    old_tokens = (await login(client)).json()["data"]

    await client.post("/api/v1/auth/forgot-password", json={"email": "alice@example.com"})
    token = mailer.last_token("reset")
    res = await client.post(
        "/api/v1/auth/reset-password", json={"token": token, "new_password": "brand-new-pass"}
    )
    assert res.status_code == 200

    assert (await login(client)).status_code == 401
    assert (await login(client, password="brand-new-pass")).status_code == 200
    # sessions from before the reset are revoked
    stale = await client.post(
        "/api/v1/auth/refresh-token", json={"refresh_token": old_tokens["refresh_token"]}
    )
    assert stale.status_code == 401
    reused = await client.post(
        "/api/v1/auth/reset-password", json={"token": token, "new_password": "another-pass-1"}
    )
    assert reused.status_code == 400


async def test_me_accepts_access_cookie(client, mailer):
    await register_and_verify(client, mailer)
    res = await login(client)
    token = res.json()["data"]["access_token"]

    client.cookies.set("access_token", token)
    me = await client.get("/api/v1/auth/me")

    assert me.status_code == 200


async def test_login_is_throttled_after_five_attempts(client):
    for _ in range(5):
        res = await login(client, email="nobody@example.com", password="guessing-again")
        assert res.status_code == 401

    blocked = await login(client, email="nobody@example.com", password="guessing-again")

    assert blocked.status_code == 429
    body = blocked.json()
    assert body["success"] is False
    assert body["error_code"] == "RATE_LIMITED"
    assert int(blocked.headers["retry-after"]) == 15 * 60


async def test_forgot_password_is_throttled(client):
    url = "/api/v1/auth/forgot-password"
    for _ in range(5):
        assert (await client.post(url, json={"email": "ghost@example.com"})).status_code == 200

    blocked = await client.post(url, json={"email": "ghost@example.com"})

    assert blocked.status_code == 429
    assert blocked.json()["error_code"] == "RATE_LIMITED"
    # other auth routes keep their own budget
    assert (await login(client, email="nobody@example.com", password="guessing-again")).status_code == 401
