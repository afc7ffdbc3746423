"""
Tests for PanelService - операции для HTTP API и бота.
"""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from conftest import FakeOrderStore, FakeSettingsStore
from panelbridge.db.redis_client import RedisClient
from panelbridge.services.models import OrderRecord
from panelbridge.services.panel_keys import PanelKeyResolver
from panelbridge.services.panel_service import (
    OrderNotFoundError,
    PanelService,
    SettingsValidationError,
)
from panelbridge.services.services_cache import MemoryBackend, ServicesCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ServicesCache(MemoryBackend(clock=clock), ttl=60)


def make_service(gateway, order_store=None, settings_store=None, cache=None) -> PanelService:
    return PanelService(
        gateway=gateway,
        order_store=order_store or FakeOrderStore(),
        settings_store=settings_store or FakeSettingsStore({"panel_key": "stored-panel-key"}),
        services_cache=cache,
        failure_threshold=3,
    )


# ============================================================================
# Настройки
# ============================================================================

async def test_short_panel_key_is_rejected_without_persistence(gateway, settings_store):
    service = make_service(gateway, settings_store=settings_store)

    with pytest.raises(SettingsValidationError):
        await service.update_settings("short")

    assert settings_store.set_calls == []


@pytest.mark.parametrize("bad_key", [None, 1234567890123, "   abc    ", ""])
async def test_invalid_panel_keys(gateway, settings_store, bad_key):
    with pytest.raises(SettingsValidationError):
        await make_service(gateway, settings_store=settings_store).update_settings(bad_key)
    assert settings_store.set_calls == []


async def test_panel_key_is_trimmed_and_stored(gateway, settings_store):
    service = make_service(gateway, settings_store=settings_store)

    stored = await service.update_settings("  0123456789abcdef  ")

    assert stored["panel_key"] == "0123456789abcdef"
    assert await service.get_settings() == {"panel_key": "0123456789abcdef"}


async def test_updating_key_evicts_services_cache(gateway, settings_store, cache):
    await cache.set([{"service": 1}])
    service = make_service(gateway, settings_store=settings_store, cache=cache)

    await service.update_settings("0123456789abcdef")

    assert await cache.get() is None


# ============================================================================
# Ключ панели
# ============================================================================

async def test_key_resolution_order():
    assert await PanelKeyResolver(FakeSettingsStore({"panel_key": "db-key"}), "env-key")("explicit") == "explicit"
    assert await PanelKeyResolver(FakeSettingsStore({"panel_key": "db-key"}), "env-key")() == "db-key"
    assert await PanelKeyResolver(FakeSettingsStore({}), "env-key")() == "env-key"
    assert await PanelKeyResolver(FakeSettingsStore({}), "")() == ""


async def test_stored_key_is_used_for_panel_calls(gateway):
    await make_service(gateway).get_balance()

    gateway.get_balance.assert_awaited_once_with("stored-panel-key")


# ============================================================================
# Услуги
# ============================================================================

async def test_services_are_cached(gateway, cache):
    gateway.list_services.return_value = [{"service": 1, "name": "Twitter Views"}]
    service = make_service(gateway, cache=cache)

    first = await service.list_services()
    second = await service.list_services()

    assert first == ([{"service": 1, "name": "Twitter Views"}], False)
    assert second == ([{"service": 1, "name": "Twitter Views"}], True)
    assert gateway.list_services.await_count == 1


async def test_services_cache_expires(gateway, cache, clock):
    gateway.list_services.return_value = [{"service": 1}]
    service = make_service(gateway, cache=cache)

    await service.list_services()
    clock.now += 61
    _, from_cache = await service.list_services()

    assert from_cache is False
    assert gateway.list_services.await_count == 2


async def test_empty_services_are_not_cached(gateway, cache):
    gateway.list_services.return_value = []
    service = make_service(gateway, cache=cache)

    await service.list_services()
    await service.list_services()

    assert gateway.list_services.await_count == 2


async def test_explicit_key_bypasses_cache(gateway, cache):
    await cache.set([{"service": 99}])
    gateway.list_services.return_value = [{"service": 1}]

    services, from_cache = await make_service(gateway, cache=cache).list_services(key="explicit-key")

    assert services == [{"service": 1}]
    assert from_cache is False
    gateway.list_services.assert_awaited_once_with("explicit-key")


# ============================================================================
# Заказы
# ============================================================================

async def test_get_order_status_unknown_order(gateway):
    with pytest.raises(OrderNotFoundError):
        await make_service(gateway).get_order_status("nope")


async def test_get_order_status_without_upstream_id(gateway):
    store = FakeOrderStore([OrderRecord(id="local-1", status="error")])

    data = await make_service(gateway, order_store=store).get_order_status("local-1")

    assert data["local"].id == "local-1"
    assert data["status"] is None
    gateway.get_order_status.assert_not_awaited()


async def test_get_order_status_by_upstream_id(gateway):
    store = FakeOrderStore([OrderRecord(id="local-1", upstream_order_id="555", status="pending")])
    gateway.get_order_status.return_value = {"status": "Completed", "mappedStatus": "completed"}

    data = await make_service(gateway, order_store=store).get_order_status("555")

    assert data["local"].id == "local-1"
    assert data["status"]["mappedStatus"] == "completed"
    gateway.get_order_status.assert_awaited_once_with("stored-panel-key", "555")


async def test_list_orders_runs_reconciliation(gateway):
    store = FakeOrderStore([OrderRecord(id="o1", upstream_order_id="1", status="placing")])
    gateway.get_order_status.return_value = {"status": "Partial"}

    orders = await make_service(gateway, order_store=store).list_orders()

    assert orders[0].status == "partial"


async def test_place_order_delegates_to_placement(gateway):
    gateway.place_order.return_value = {"order": "555", "status": "processing"}
    store = FakeOrderStore()

    result = await make_service(gateway, order_store=store).place_order(
        service_id=1, link="http://x/y", quantity=100
    )

    assert result.ok
    assert result.order.upstream_order_id == "555"
    assert result.order.status == "placing"


async def test_key_is_saved_when_redis_eviction_fails(gateway, settings_store):
    redis_backend = RedisClient("redis://127.0.0.1:1/0")
    redis_backend.redis = AsyncMock()
    redis_backend.redis.delete.side_effect = RedisConnectionError("connection refused")
    service = make_service(gateway, settings_store=settings_store, cache=ServicesCache(redis_backend, ttl=60))

    stored = await service.update_settings("abcdefghijklmnop")

    assert stored["panel_key"] == "abcdefghijklmnop"
    assert settings_store.data["panel_key"] == "abcdefghijklmnop"


async def test_redis_cache_miss_when_redis_is_down():
    redis_backend = RedisClient("redis://127.0.0.1:1/0")
    redis_backend.redis = AsyncMock()
    redis_backend.redis.get.side_effect = RedisConnectionError("connection refused")
    redis_backend.redis.set.side_effect = RedisConnectionError("connection refused")
    cache = ServicesCache(redis_backend, ttl=60)

    await cache.set([{"service": 1}])

    assert await cache.get() is None
