"""
Tests for HTTP API (FastAPI) поверх PanelService с подменённой панелью.
"""

import httpx
import pytest

from conftest import FakeOrderStore, FakeSettingsStore
from panelbridge.admin.main import create_app
from panelbridge.admin.services.auth_service import AuthService
from panelbridge.api.panel_client import PanelAPIError
from panelbridge.core.config import settings
from panelbridge.db.init_db import seed_default_user
from panelbridge.services.models import OrderRecord
from panelbridge.services.order_store import UserStore
from panelbridge.services.panel_service import PanelService

BOT_TOKEN_VALUE = "internal-bot-token"


@pytest.fixture
def order_store():
    return FakeOrderStore([OrderRecord(id="local-1", upstream_order_id="555", status="completed")])


@pytest.fixture
def panel_service(gateway, order_store):
    return PanelService(
        gateway=gateway,
        order_store=order_store,
        settings_store=FakeSettingsStore({"panel_key": "stored-panel-key"}),
        failure_threshold=3,
    )


@pytest.fixture
def user_store(session_factory):
    return UserStore(session_factory)


@pytest.fixture
async def client(panel_service, user_store, monkeypatch):
    monkeypatch.setattr(settings, "BOT_JWT", BOT_TOKEN_VALUE)
    app = create_app(panel_service=panel_service, user_store=user_store)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    token = AuthService.create_access_token({"sub": "1", "email": "admin@example.com"})
    return {"Authorization": f"Bearer {token}"}


BOT_HEADERS = {"Authorization": f"Bearer {BOT_TOKEN_VALUE}"}


# ============================================================================
# Служебные маршруты и авторизация
# ============================================================================

async def test_root_and_health(client):
    root = await client.get("/")
    health = await client.get("/health")

    assert root.status_code == 200
    assert root.json()["ok"] is True
    assert health.json() == {"status": "ok"}


@pytest.mark.parametrize(
    "method, path",
    [
        ("GET", "/api/panel/services"),
        ("GET", "/api/panel/balance"),
        ("GET", "/api/panel/orders"),
        ("GET", "/api/panel/order/555"),
        ("GET", "/api/settings"),
    ],
)
async def test_routes_require_token(client, method, path):
    response = await client.request(method, path)

    assert response.status_code == 401


async def test_invalid_jwt_is_rejected(client):
    response = await client.get("/api/settings", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


async def test_bot_token_bypasses_jwt(client):
    response = await client.get("/api/settings", headers=BOT_HEADERS)

    assert response.status_code == 200
    assert response.json() == {"settings": {"panel_key": "stored-panel-key"}}


async def test_login(client, user_store, session_factory):
    assert await seed_default_user(session_factory) is True

    response = await client.post(
        "/api/auth/login",
        json={"email": settings.ADMIN_EMAIL, "password": settings.ADMIN_PASSWORD},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user"] == {"email": settings.ADMIN_EMAIL}
    me = await client.get("/api/settings", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200


async def test_login_with_wrong_password(client, session_factory):
    await seed_default_user(session_factory)

    response = await client.post(
        "/api/auth/login",
        json={"email": settings.ADMIN_EMAIL, "password": "wrong-password"},
    )

    assert response.status_code == 401


async def test_seed_runs_only_once(session_factory):
    assert await seed_default_user(session_factory) is True
    assert await seed_default_user(session_factory) is False


# ============================================================================
# Панель
# ============================================================================

async def test_services(client, gateway, auth_headers):
    gateway.list_services.return_value = [{"service": 1, "name": "Twitter Views"}]

    response = await client.get("/api/panel/services", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"services": [{"service": 1, "name": "Twitter Views"}], "fromCache": False}


async def test_services_empty_is_204(client, gateway, auth_headers):
    gateway.list_services.return_value = []

    response = await client.get("/api/panel/services", headers=auth_headers)

    assert response.status_code == 204


async def test_services_upstream_error_is_502(client, gateway, auth_headers):
    gateway.list_services.side_effect = PanelAPIError("panel down")

    response = await client.get("/api/panel/services", headers=auth_headers)

    assert response.status_code == 502
    assert response.json()["detail"]["detail"] == "panel down"


async def test_balance(client, auth_headers):
    response = await client.get("/api/panel/balance", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"balance": {"balance": "10.00", "currency": "USD"}}


async def test_place_order(client, gateway, auth_headers):
    gateway.place_order.return_value = {"order": "777", "status": "processing"}

    response = await client.post(
        "/api/panel/order",
        headers=auth_headers,
        json={"serviceId": 1, "link": "http://x/y", "quantity": 100},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["localOrder"]["upstreamOrderId"] == "777"
    assert body["localOrder"]["status"] == "placing"
    assert body["upstreamResponse"] == {"order": "777", "status": "processing"}


async def test_place_order_failure_is_502_with_local_order(client, gateway, auth_headers):
    gateway.place_order.side_effect = PanelAPIError("Not enough funds")

    response = await client.post(
        "/api/panel/order",
        headers=auth_headers,
        json={"serviceId": 1, "link": "http://x/y", "quantity": 100},
    )

    assert response.status_code == 502
    body = response.json()
    assert body["error"] == "Panel order failed"
    assert body["detail"] == "Not enough funds"
    assert body["localOrder"]["status"] == "error"


async def test_place_order_validation(client, auth_headers):
    response = await client.post(
        "/api/panel/order",
        headers=auth_headers,
        json={"serviceId": 1, "link": "", "quantity": -1},
    )

    assert response.status_code == 422


async def test_order_status(client, gateway, auth_headers):
    gateway.get_order_status.return_value = {"status": "Completed", "mappedStatus": "completed"}

    response = await client.get("/api/panel/order/555", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["local"]["id"] == "local-1"
    assert body["status"]["mappedStatus"] == "completed"


async def test_order_status_not_found(client, auth_headers):
    response = await client.get("/api/panel/order/unknown", headers=auth_headers)

    assert response.status_code == 404


async def test_order_status_upstream_error(client, gateway, auth_headers):
    gateway.get_order_status.side_effect = PanelAPIError("timeout")

    response = await client.get("/api/panel/order/local-1", headers=auth_headers)

    assert response.status_code == 502


async def test_orders(client, auth_headers):
    response = await client.get("/api/panel/orders", headers=auth_headers)

    assert response.status_code == 200
    orders = response.json()["orders"]
    assert [o["id"] for o in orders] == ["local-1"]


# ============================================================================
# Настройки
# ============================================================================

async def test_update_panel_key(client, auth_headers):
    response = await client.put(
        "/api/settings/panel-key",
        headers=auth_headers,
        json={"panelKey": "0123456789abcdef"},
    )

    assert response.status_code == 200
    assert response.json()["ok"] is True
    stored = await client.get("/api/settings", headers=auth_headers)
    assert stored.json()["settings"]["panel_key"] == "0123456789abcdef"


async def test_update_panel_key_too_short(client, auth_headers):
    response = await client.put(
        "/api/settings/panel-key",
        headers=auth_headers,
        json={"panelKey": "short"},
    )

    assert response.status_code == 400
