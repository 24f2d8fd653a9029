from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from eventauth.config.admin_config import AdminSettings
from eventauth.container import build_container
from eventauth.main import create_app
from tests.conftest import ADMIN_SECRET, url_prefix

EMAIL = "member@example.com"
ADMIN_HEADERS = {"X-Admin-Secret": ADMIN_SECRET}


async def fail_verification(ac_client, times):
    for _ in range(times):
        await ac_client.post(f"{url_prefix}/auth/otp/verify", json={"email": EMAIL, "otp": "999999"})


async def test_admin_routes_require_secret(ac_client):
    resp = await ac_client.get(f"{url_prefix}/admin/suspensions/{EMAIL}")
    assert resp.status_code == 403

    resp = await ac_client.get(f"{url_prefix}/admin/suspensions/{EMAIL}", headers={"X-Admin-Secret": "guess"})
    assert resp.status_code == 403


async def test_suspension_status_and_clear(ac_client):
    await fail_verification(ac_client, 5)

    resp = await ac_client.get(f"{url_prefix}/admin/suspensions/{EMAIL}", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["suspended"] is True
    assert data["failed_attempts"] == 5

    resp = await ac_client.delete(f"{url_prefix}/admin/suspensions/{EMAIL}", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["data"]["cleared"] is True

    resp = await ac_client.post(f"{url_prefix}/auth/otp/verify", json={"email": EMAIL, "otp": "123456"})
    assert resp.status_code == 200


async def test_invalid_email_in_admin_path(ac_client):
    resp = await ac_client.get(f"{url_prefix}/admin/suspensions/nope", headers=ADMIN_HEADERS)
    assert resp.status_code == 400


async def test_reset_identity_rate_limit(ac_client):
    for _ in range(3):
        await ac_client.post(f"{url_prefix}/auth/otp/request", json={"email": EMAIL})
    blocked = await ac_client.post(f"{url_prefix}/auth/otp/request", json={"email": EMAIL})
    assert blocked.status_code == 429

    resp = await ac_client.delete(f"{url_prefix}/admin/rate-limits/identity/{EMAIL}", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["data"]["reset"] is True

    again = await ac_client.post(f"{url_prefix}/auth/otp/request", json={"email": EMAIL})
    assert again.status_code == 200


async def test_reset_unknown_scope_is_400(ac_client):
    resp = await ac_client.delete(f"{url_prefix}/admin/rate-limits/bogus/key", headers=ADMIN_HEADERS)
    assert resp.status_code == 400


async def test_health(ac_client):
    resp = await ac_client.get(f"{url_prefix}/health")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "healthy"


async def test_admin_open_in_dev_without_secret(settings, store, transport, events, clock):
    admin = AdminSettings(ENV="dev", ADMIN_SECRET=None)
    container = build_container(settings, admin, store=store, transport=transport, events=events, clock=clock)
    app = create_app(container=container, settings=settings, admin=admin)
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            resp = await ac.get(f"{url_prefix}/admin/suspensions/{EMAIL}")
    assert resp.status_code == 200


async def test_admin_closed_in_prod_without_secret(settings, store, transport, events, clock):
    admin = AdminSettings(ENV="prod", ADMIN_SECRET=None)
    container = build_container(settings, admin, store=store, transport=transport, events=events, clock=clock)
    app = create_app(container=container, settings=settings, admin=admin)
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            resp = await ac.get(f"{url_prefix}/admin/suspensions/{EMAIL}")
    assert resp.status_code == 403


async def test_admin_router_not_mounted_when_disabled(container, settings):
    app = create_app(container=container, settings=settings, admin=AdminSettings(ENABLE_ADMIN=False))
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            resp = await ac.get(f"{url_prefix}/admin/suspensions/{EMAIL}", headers=ADMIN_HEADERS)
    assert resp.status_code == 404
