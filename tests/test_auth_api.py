from httpx import ASGITransport, AsyncClient

from conftest import STRONG_PASSWORD, bearer, register, user_payload

from app.api.routes import users as users_routes
from app.main import app


async def test_register_returns_user_token_and_cookie(client):
    resp = await client.post("/auth/register", json=user_payload())
    assert resp.status_code == 201
    body = resp.json()
    assert body["user"]["email"] == "ada@example.com"
    assert body["user"]["provider"] == "local"
    assert body["user"]["is_active"] is True
    assert "hashed_password" not in body["user"]
    assert "token_version" not in body["user"]
    assert body["access_token"]
    assert body["token_type"] == "bearer"

    set_cookie = resp.headers["set-cookie"]
    assert set_cookie.startswith("access_token=")
    assert "HttpOnly" in set_cookie
    assert "samesite=lax" in set_cookie.lower()


async def test_register_duplicate_email_conflicts(client):
    await register(client)
    resp = await client.post("/auth/register", json=user_payload())
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Email already exists"


async def test_register_duplicate_email_is_case_insensitive(client):
    await register(client)
    resp = await client.post("/auth/register", json=user_payload("ADA@Example.com"))
    assert resp.status_code == 409


async def test_register_validation_failures_are_400(client):
    weak = await client.post("/auth/register", json=user_payload(password="alllowercase1"))
    assert weak.status_code == 400

    short = await client.post("/auth/register", json=user_payload(password="Ab1!"))
    assert short.status_code == 400

    bad_email = await client.post("/auth/register", json=user_payload(email="not-an-email"))
    assert bad_email.status_code == 400

    unknown_field = await client.post("/auth/register", json=user_payload(is_admin=True))
    assert unknown_field.status_code == 400

    bad_gender = await client.post("/auth/register", json=user_payload(gender="robot"))
    assert bad_gender.status_code == 400


async def test_login_with_correct_password(client):
    await register(client)
    resp = await client.post("/auth/login", json={"email": "ada@example.com", "password": STRONG_PASSWORD})
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"]["email"] == "ada@example.com"
    assert "access_token=" in resp.headers["set-cookie"]

    me = await client.get("/auth/me", headers=bearer(body["access_token"]))
    assert me.status_code == 200
    assert me.json()["email"] == "ada@example.com"


async def test_login_with_wrong_password_is_401(client):
    await register(client)
    resp = await client.post("/auth/login", json={"email": "ada@example.com", "password": "Wrong123!"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid credentials"
    assert "set-cookie" not in resp.headers


async def test_login_unknown_email_is_401(client):
    resp = await client.post("/auth/login", json={"email": "nobody@example.com", "password": STRONG_PASSWORD})
    assert resp.status_code == 401


async def test_me_accepts_session_cookie(client):
    resp = await client.post("/auth/register", json=user_payload())
    assert resp.status_code == 201
    # cookie jar now holds access_token
    me = await client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["first_name"] == "Ada"


async def test_me_requires_token(client):
    resp = await client.get("/auth/me")
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"

    resp = await client.get("/auth/me", headers=bearer("garbage"))
    assert resp.status_code == 401


async def test_logout_clears_cookie(client):
    await client.post("/auth/register", json=user_payload())
    resp = await client.post("/auth/logout")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Logged out successfully"}
    set_cookie = resp.headers["set-cookie"]
    assert set_cookie.startswith('access_token=""') or "Max-Age=0" in set_cookie

    me = await client.get("/auth/me")
    assert me.status_code == 401


async def test_logout_all_devices_invalidates_every_token(client):
    await register(client)
    first = await client.post("/auth/login", json={"email": "ada@example.com", "password": STRONG_PASSWORD})
    second = await client.post("/auth/login", json={"email": "ada@example.com", "password": STRONG_PASSWORD})
    client.cookies.clear()
    token_a = first.json()["access_token"]
    token_b = second.json()["access_token"]

    resp = await client.post("/auth/logout-all-devices", headers=bearer(token_a))
    assert resp.status_code == 200
    client.cookies.clear()

    assert (await client.get("/auth/me", headers=bearer(token_a))).status_code == 401
    assert (await client.get("/auth/me", headers=bearer(token_b))).status_code == 401

    # a fresh login works again
    fresh = await client.post("/auth/login", json={"email": "ada@example.com", "password": STRONG_PASSWORD})
    client.cookies.clear()
    me = await client.get("/auth/me", headers=bearer(fresh.json()["access_token"]))
    assert me.status_code == 200


async def test_logout_all_devices_requires_auth(client):
    resp = await client.post("/auth/logout-all-devices")
    assert resp.status_code == 401


async def test_token_of_deleted_user_is_rejected(client):
    user, token = await register(client)
    resp = await client.delete(f"/users/{user['id']}", headers=bearer(token))
    assert resp.status_code == 204
    assert (await client.get("/auth/me", headers=bearer(token))).status_code == 401


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


async def test_login_rejects_unknown_fields(client):
    await register(client)
    resp = await client.post(
        "/auth/login",
        json={"email": "ada@example.com", "password": STRONG_PASSWORD, "is_admin": True},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"][0]["type"] == "extra_forbidden"
    assert "set-cookie" not in resp.headers


async def test_unhandled_error_is_500_with_cors_headers(client, monkeypatch):
    _, token = await register(client)

    async def broken_stats(session):
        raise RuntimeError("database on fire")

    monkeypatch.setattr(users_routes, "user_stats", broken_stats)
    # the server error middleware re-raises after responding; read the response instead
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as raw:
        resp = await raw.get("/users/stats", headers={**bearer(token), "Origin": "http://localhost:3001"})
    assert resp.status_code == 500
    assert resp.json() == {"detail": "RuntimeError: database on fire"}
    assert resp.headers["access-control-allow-origin"] == "http://localhost:3001"
