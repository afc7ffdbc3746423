"""
Pytest configuration and fixtures.

Окружение фиксируется до импорта panelbridge: движок БД создаётся
при импорте panelbridge.db.session.
"""

import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = ""
os.environ["BOT_TOKEN"] = ""
os.environ["HOST_URL"] = ""
os.environ["PANEL_API_KEY"] = ""
os.environ["BOT_JWT"] = ""
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="panelbridge-logs-")

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from panelbridge.db.models import Base
from panelbridge.db.session import make_engine, make_session_factory
from panelbridge.services.models import OrderRecord
from panelbridge.services.order_store import _clean_order_values, new_order_id

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    """Момент времени через N минут после T0."""
    return T0 + timedelta(minutes=minutes)


@pytest.fixture
async def session_factory(tmp_path):
    """Фабрика сессий поверх отдельной SQLite базы в tmp_path."""
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield make_session_factory(engine)
    await engine.dispose()


class FakeOrderStore:
    """In-memory хранилище заказов с теми же правилами upsert, что и OrderStore."""

    def __init__(self, orders: Optional[List[OrderRecord]] = None):
        self.orders: Dict[str, OrderRecord] = {o.id: o for o in orders or []}
        self.writes: List[OrderRecord] = []

    async def upsert_order(self, data) -> OrderRecord:
        if isinstance(data, OrderRecord):
            data = data.as_dict()
        data = _clean_order_values(data)

        existing = None
        upstream_id = data.get("upstream_order_id")
        if upstream_id:
            existing = next((o for o in self.orders.values() if o.upstream_order_id == upstream_id), None)
        if existing is None and data.get("id"):
            existing = self.orders.get(data["id"])

        if existing is not None:
            changes = {k: v for k, v in data.items() if k != "id"}
            record = replace(existing, **changes)
        else:
            data.setdefault("id", new_order_id())
            record = OrderRecord(**data)
        self.orders[record.id] = record
        self.writes.append(record)
        return record

    async def list_orders(self) -> List[OrderRecord]:
        return sorted(self.orders.values(), key=lambda o: o.created_at, reverse=True)

    async def find_order(self, ref) -> Optional[OrderRecord]:
        ref = str(ref)
        for order in await self.list_orders():
            if order.id == ref or order.upstream_order_id == ref:
                return order
        return None


class FakeSettingsStore:
    def __init__(self, initial: Optional[dict] = None):
        self.data = dict(initial or {})
        self.set_calls: List[dict] = []

    async def get_settings(self) -> dict:
        return dict(self.data)

    async def set_settings(self, new_settings) -> dict:
        self.set_calls.append(dict(new_settings))
        self.data.update(new_settings)
        return dict(self.data)


@pytest.fixture
def order_store():
    return FakeOrderStore()


@pytest.fixture
def settings_store():
    return FakeSettingsStore({"panel_key": "stored-panel-key"})


@pytest.fixture
def gateway():
    """Заглушка клиента панели: все методы - AsyncMock."""
    mock = AsyncMock()
    mock.list_services.return_value = []
    mock.get_balance.return_value = {"balance": "10.00", "currency": "USD"}
    return mock


@pytest.fixture
def key_resolver():
    return AsyncMock(return_value="panel-key")
