"""
Хранилище заказов, настроек и пользователей API поверх async SQLAlchemy.

Каждая операция открывает собственную сессию: параллельные ветки синхронизации
пишут каждая в свою транзакцию. Конкурентные записи в один и тот же заказ не
сериализуются - побеждает последняя.
"""

from __future__ import annotations

import logging
import uuid
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from panelbridge.db.models import Order, Setting, User
from panelbridge.services.models import OrderRecord, ensure_aware, utcnow

logger = logging.getLogger(__name__)

_ORDER_FIELDS = frozenset(OrderRecord.__slots__)
# Колонки NOT NULL: None для них означает "не задано"
_NON_NULLABLE = frozenset({"status", "sync_attempts", "created_at"})


def new_order_id() -> str:
    return uuid.uuid4().hex


def _to_record(row: Order) -> OrderRecord:
    return OrderRecord(
        id=row.id,
        link=row.link or "",
        quantity=row.quantity,
        service_id=row.service_id,
        runs=row.runs,
        interval=row.interval,
        upstream_order_id=row.upstream_order_id,
        status=row.status,
        error=row.error,
        chat_id=row.chat_id,
        created_at=ensure_aware(row.created_at),
        updated_at=ensure_aware(row.updated_at),
        completed_at=ensure_aware(row.completed_at),
        sync_attempts=row.sync_attempts or 0,
        upstream_data=row.upstream_data,
    )


def _clean_order_values(data: Mapping[str, Any]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in _ORDER_FIELDS:
            continue
        if value is None and key in _NON_NULLABLE:
            continue
        if isinstance(value, Enum):
            value = value.value
        if key in {"upstream_order_id", "service_id", "chat_id"} and value is not None:
            value = str(value)
        values[key] = value
    return values


class OrderStore:
    """Локальные заказы: upsert по идентификатору и выборки."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def upsert_order(self, data: Mapping[str, Any] | OrderRecord) -> OrderRecord:
        """
        Создаёт или обновляет заказ.

        Существующая запись ищется сначала по upstream_order_id (если он задан),
        затем по id. Найденная запись получает переданные поля (остальные
        сохраняются) и новое updated_at; иначе создаётся новая запись.
        Если id не передан, он генерируется.
        """
        if isinstance(data, OrderRecord):
            data = data.as_dict()
        values = _clean_order_values(data)
        if not values.get("id"):
            values["id"] = new_order_id()

        async with self._session_factory() as session:
            async with session.begin():
                existing: Optional[Order] = None
                upstream_id = values.get("upstream_order_id")
                if upstream_id:
                    result = await session.execute(
                        select(Order).where(Order.upstream_order_id == upstream_id)
                    )
                    existing = result.scalars().first()
                if existing is None:
                    existing = await session.get(Order, values["id"])

                if existing is not None:
                    for key, value in values.items():
                        if key == "id":
                            continue
                        setattr(existing, key, value)
                    existing.updated_at = utcnow()
                    row = existing
                    logger.debug("Order updated -> %s", row.id)
                else:
                    row = Order(**values)
                    session.add(row)
                    logger.debug("Order created -> %s", row.id)
                await session.flush()
                record = _to_record(row)
        return record

    async def list_orders(self) -> List[OrderRecord]:
        """Все заказы, новые (по created_at) первыми."""
        async with self._session_factory() as session:
            result = await session.execute(select(Order).order_by(Order.created_at.desc()))
            return [_to_record(row) for row in result.scalars()]

    async def find_order(self, ref: Any) -> Optional[OrderRecord]:
        """Ищет заказ по локальному id или по id в панели."""
        ref = str(ref)
        async with self._session_factory() as session:
            result = await session.execute(
                select(Order)
                .where(or_(Order.id == ref, Order.upstream_order_id == ref))
                .order_by(Order.created_at.desc())
                .limit(1)
            )
            row = result.scalars().first()
            return _to_record(row) if row else None


class SettingsStore:
    """Единственная запись настроек: ключ панели и прочие параметры."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _as_dict(row: Setting) -> Dict[str, Any]:
        return {
            "panel_key": row.panel_key,
            "other_settings": dict(row.other_settings or {}),
        }

    async def get_settings(self) -> Dict[str, Any]:
        """Текущие настройки или пустой словарь, если они ещё не сохранялись."""
        async with self._session_factory() as session:
            result = await session.execute(select(Setting).limit(1))
            row = result.scalar_one_or_none()
            return self._as_dict(row) if row else {}

    async def set_settings(self, new_settings: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Объединяет переданные поля с сохранёнными.

        panel_key пишется в отдельную колонку, other_settings и любые
        неизвестные ключи - в общий JSON-словарь.
        """
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(select(Setting).limit(1))
                row = result.scalar_one_or_none()
                if row is None:
                    row = Setting(id=1, other_settings={})
                    session.add(row)

                other = dict(row.other_settings or {})
                for key, value in new_settings.items():
                    if key == "panel_key":
                        row.panel_key = value
                    elif key == "other_settings" and isinstance(value, Mapping):
                        other.update(value)
                    else:
                        other[key] = value
                row.other_settings = other
                row.updated_at = utcnow()
                await session.flush()
                return self._as_dict(row)


class UserStore:
    """Пользователи HTTP API."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_by_email(self, email: str) -> Optional[User]:
        async with self._session_factory() as session:
            result = await session.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()

    async def get_by_id(self, user_id: int) -> Optional[User]:
        async with self._session_factory() as session:
            return await session.get(User, user_id)

    async def count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(User))
            return int(result.scalar_one())

    async def create(self, email: str, password_hash: str) -> User:
        async with self._session_factory() as session:
            async with session.begin():
                user = User(email=email, password_hash=password_hash)
                session.add(user)
                await session.flush()
            return user
