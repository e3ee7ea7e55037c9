"""
Account and session tests: register, login, refresh, logout, account updates and password reset.
"""

import pytest

from conftest import TEST_PASSWORD, auth_headers, make_actor, make_user


async def register(client, email: str, password: str = TEST_PASSWORD, display_name: str = "Test User"):
    return await client.post("/api/v1/auth/register", json={
        "email": email,
        "password": password,
        "display_name": display_name,
    })


async def login(client, email: str, password: str = TEST_PASSWORD):
    return await client.post("/api/v1/auth/login", json={"email": email, "password": password})


# ---------------------------------------------------------------------------
# Register / login
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_register_returns_token_pair(client):
    resp = await register(client, "New.Person@example.com")
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["access_token"] and body["refresh_token"]

    me = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"}
    )
    assert me.status_code == 200
    assert me.json()["email"] == "new.person@example.com"
    assert me.json()["organizations"] == []


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts(client):
    assert (await register(client, "dup@example.com")).status_code == 201
    resp = await register(client, "DUP@example.com")
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "EMAIL_TAKEN"


@pytest.mark.asyncio
async def test_register_password_needs_a_digit(client):
    resp = await register(client, "weak@example.com", password="password")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_login_rejects_wrong_password(client, db):
    await make_user(db, "someone@example.com")
    resp = await login(client, "someone@example.com", "wrongpass1")
    assert resp.status_code == 401
    assert resp.json()["detail"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_login_disabled_account(client, db):
    user = await make_user(db, "disabled@example.com")
    user.is_active = False
    await db.commit()

    resp = await login(client, "disabled@example.com")
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "ACCOUNT_DISABLED"


@pytest.mark.asyncio
async def test_login_is_rate_limited(client, db, monkeypatch):
    # Pin the clock so all attempts land in one window
    monkeypatch.setattr("memberhub.core.dependencies.time.time", lambda: 1_800_000_000.0)
    await make_user(db, "flood@example.com")
    codes = [(await login(client, "flood@example.com", "wrongpass1")).status_code for _ in range(21)]
    assert codes[:20] == [401] * 20
    assert codes[20] == 429


# ---------------------------------------------------------------------------
# Refresh / logout
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_refresh_token_works_once(client, db):
    await make_user(db, "refresh@example.com")
    tokens = (await login(client, "refresh@example.com")).json()

    first = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert first.status_code == 200

    again = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert again.status_code == 401
    assert again.json()["detail"]["code"] == "TOKEN_REVOKED"


@pytest.mark.asyncio
async def test_logout_revokes_access_token(client, db):
    await make_user(db, "bye@example.com")
    tokens = (await login(client, "bye@example.com")).json()
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    resp = await client.post(
        "/api/v1/auth/logout", json={"refresh_token": tokens["refresh_token"]}, headers=headers
    )
    assert resp.status_code == 204

    me = await client.get("/api/v1/auth/me", headers=headers)
    assert me.status_code == 401
    assert me.json()["detail"]["code"] == "TOKEN_REVOKED"


@pytest.mark.asyncio
async def test_me_requires_token(client):
    resp = await client.get("/api/v1/auth/me")
    assert resp.status_code == 401
    assert resp.json()["detail"]["code"] == "MISSING_TOKEN"


@pytest.mark.asyncio
async def test_me_lists_profiles(client, db, org):
    actor = await make_actor(db, org, "listed@example.com")
    resp = await client.get("/api/v1/auth/me", headers=actor.headers)
    assert resp.status_code == 200
    orgs = resp.json()["organizations"]
    assert [o["slug"] for o in orgs] == [org.slug]
    assert orgs[0]["role"] == "member"


@pytest.mark.asyncio
async def test_update_display_name(client, db, org):
    actor = await make_actor(db, org, "renamed@example.com")
    resp = await client.patch("/api/v1/auth/me", json={"display_name": "Rena Med"}, headers=actor.headers)
    assert resp.status_code == 200
    assert resp.json()["display_name"] == "Rena Med"
    assert [o["slug"] for o in resp.json()["organizations"]] == [org.slug]


@pytest.mark.asyncio
async def test_change_password(client, db):
    user = await make_user(db, "changer@example.com")
    headers = auth_headers(user)

    wrong = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": "not-it-1", "new_password": "fresher99"},
        headers=headers,
    )
    assert wrong.status_code == 400
    assert wrong.json()["detail"]["code"] == "INVALID_PASSWORD"

    weak = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": TEST_PASSWORD, "new_password": "nodigits"},
        headers=headers,
    )
    assert weak.status_code == 422

    resp = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": TEST_PASSWORD, "new_password": "fresher99"},
        headers=headers,
    )
    assert resp.status_code == 204
    assert (await login(client, "changer@example.com")).status_code == 401
    assert (await login(client, "changer@example.com", "fresher99")).status_code == 200


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_forgot_password_unknown_email_is_silent(client, queued):
    resp = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})
    assert resp.status_code == 204
    assert queued.named("send_password_reset_email") == []


@pytest.mark.asyncio
async def test_password_reset_flow(client, db, queued):
    await make_user(db, "forgetful@example.com")

    resp = await client.post("/api/v1/auth/forgot-password", json={"email": "forgetful@example.com"})
    assert resp.status_code == 204
    [email_call] = queued.named("send_password_reset_email")
    token = email_call["reset_token"]

    reset = await client.post(
        "/api/v1/auth/reset-password", json={"token": token, "new_password": "brandnew42"}
    )
    assert reset.status_code == 204

    assert (await login(client, "forgetful@example.com")).status_code == 401
    assert (await login(client, "forgetful@example.com", "brandnew42")).status_code == 200

    reused = await client.post(
        "/api/v1/auth/reset-password", json={"token": token, "new_password": "another42"}
    )
    assert reused.status_code == 400
