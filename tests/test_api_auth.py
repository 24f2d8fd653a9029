import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from eventauth.auth.constants import ACCESS_COOKIE_NAME
from eventauth.config.admin_config import AdminSettings
from eventauth.container import build_container
from eventauth.main import create_app
from tests.conftest import url_prefix

EMAIL = "member@example.com"


async def request_otp(ac_client, email=EMAIL):
    return await ac_client.post(f"{url_prefix}/auth/otp/request", json={"email": email})


async def test_request_and_verify_otp(ac_client, transport):
    resp = await request_otp(ac_client)
    assert resp.status_code == 200

    body = resp.json()
    assert body["status"] == "ok"
    assert body["data"]["success"] is True
    dev_code = body["data"]["otp"]
    assert transport.last_code(EMAIL) == dev_code

    resp = await ac_client.post(f"{url_prefix}/auth/otp/verify", json={"email": EMAIL, "otp": dev_code})
    assert resp.status_code == 200

    credential = resp.json()["data"]["credential"]
    assert credential["email"] == EMAIL
    assert credential["token_type"] == "bearer"
    assert ACCESS_COOKIE_NAME in resp.headers.get("set-cookie", "")

    me = await ac_client.get(f"{url_prefix}/auth/me",
                             headers={"Authorization": f"Bearer {credential['access_token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["email"] == EMAIL


async def test_invalid_email_is_400(ac_client):
    resp = await request_otp(ac_client, "definitely not an email")
    assert resp.status_code == 400

    body = resp.json()
    assert body["status"] == "error"
    assert body["data"] is None
    assert body["error"]["code"] == "INVALID_EMAIL"


async def test_missing_field_is_422(ac_client):
    resp = await ac_client.post(f"{url_prefix}/auth/otp/request", json={})
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "UNPROCESSABLE_ENTITY"


async def test_rate_limited_is_429_with_retry_after(ac_client):
    for _ in range(3):
        assert (await request_otp(ac_client)).status_code == 200

    resp = await request_otp(ac_client)
    assert resp.status_code == 429
    assert resp.json()["error"]["code"] == "RATE_LIMITED"
    assert 0 < int(resp.headers["Retry-After"]) <= 900


async def test_delivery_failure_is_500(ac_client, transport):
    transport.fail_with = "connection refused"
    resp = await request_otp(ac_client)
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "DELIVERY_FAILED"


async def test_wrong_code_is_400_then_suspended_is_403(ac_client):
    await request_otp(ac_client)

    for _ in range(4):
        resp = await ac_client.post(f"{url_prefix}/auth/otp/verify", json={"email": EMAIL, "otp": "999999"})
        assert resp.status_code == 400
        assert resp.json()["error"]["details"]["message"] == "Invalid or expired OTP code"

    resp = await ac_client.post(f"{url_prefix}/auth/otp/verify", json={"email": EMAIL, "otp": "999999"})
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "SUSPENDED"

    assert (await request_otp(ac_client)).status_code == 403


async def test_sentinel_code_signs_in_dev(ac_client):
    resp = await ac_client.post(f"{url_prefix}/auth/otp/verify", json={"email": EMAIL, "otp": "123456"})
    assert resp.status_code == 200
    assert resp.json()["data"]["credential"]["email"] == EMAIL


async def test_me_requires_credential(ac_client):
    assert (await ac_client.get(f"{url_prefix}/auth/me")).status_code == 401

    resp = await ac_client.get(f"{url_prefix}/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


async def test_logout_clears_cookie(ac_client):
    resp = await ac_client.post(f"{url_prefix}/auth/otp/verify", json={"email": EMAIL, "otp": "123456"})
    token = resp.json()["data"]["credential"]["access_token"]

    resp = await ac_client.post(f"{url_prefix}/auth/logout", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert f'{ACCESS_COOKIE_NAME}=""' in resp.headers.get("set-cookie", "")


async def test_request_id_is_echoed(ac_client):
    resp = await request_otp(ac_client)
    assert resp.headers["X-Request-ID"]
    assert resp.json()["request_id"] == resp.headers["X-Request-ID"]

    resp = await ac_client.get(f"{url_prefix}/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"


async def test_unknown_route_uses_error_envelope(ac_client):
    resp = await ac_client.get(f"{url_prefix}/nowhere")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "HTTP_404"


@pytest.fixture
async def staging_client(settings, store, transport, events, clock):
    admin = AdminSettings(ENV="staging")
    services = build_container(settings, admin, store=store, transport=transport, events=events, clock=clock)
    app = create_app(container=services, settings=settings, admin=admin)
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac


async def test_staging_neither_echoes_code_nor_accepts_sentinel(staging_client, transport):
    resp = await request_otp(staging_client)
    assert resp.status_code == 200
    assert "otp" not in resp.json()["data"]

    real_code = transport.last_code(EMAIL)
    if real_code != "123456":
        resp = await staging_client.post(f"{url_prefix}/auth/otp/verify", json={"email": EMAIL, "otp": "123456"})
        assert resp.status_code != 200

    resp = await staging_client.post(f"{url_prefix}/auth/otp/verify", json={"email": EMAIL, "otp": real_code})
    assert resp.status_code == 200
