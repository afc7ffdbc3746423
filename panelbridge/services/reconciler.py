"""
Синхронизация локальных заказов со статусами SMM-панели.

Один проход:
1. Дедупликация по upstream_order_id (остаётся самый свежий заказ).
2. Отбор нетерминальных заказов с upstream_order_id.
3. Параллельный запрос статусов; ошибка одного заказа не прерывает остальные.
4. Запись только изменившихся статусов; неудачи считаются в sync_attempts,
   после превышения порога заказ переводится в error.
5. Возврат свежего списка из хранилища.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, List, Optional

from panelbridge.core.status import SYNC_ELIGIBLE_STATUSES, OrderStatus, normalize_status
from panelbridge.services.models import OrderRecord, utcnow
from panelbridge.services.notifier import NullNotifier, StatusNotifier

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 3

KeyResolver = Callable[[], Awaitable[str]]

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def deduplicate_orders(orders: Iterable[OrderRecord]) -> List[OrderRecord]:
    """
    Сортирует заказы по created_at (новые первыми) и оставляет для каждого
    upstream_order_id только самый свежий. Заказы без upstream_order_id не трогаем.
    """
    unique: List[OrderRecord] = []
    seen: set[str] = set()
    for order in sorted(orders, key=lambda o: o.created_at or _EPOCH, reverse=True):
        upstream_id = order.upstream_order_id
        if upstream_id:
            if upstream_id in seen:
                continue
            seen.add(upstream_id)
        unique.append(order)
    return unique


def is_sync_eligible(order: OrderRecord) -> bool:
    return bool(order.upstream_order_id) and order.status in SYNC_ELIGIBLE_STATUSES


class OrderReconciler:
    """Приводит статусы локальных заказов к состоянию в панели."""

    def __init__(
        self,
        store,
        gateway,
        key_resolver: KeyResolver,
        notifier: Optional[StatusNotifier] = None,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
    ):
        self.store = store
        self.gateway = gateway
        self.key_resolver = key_resolver
        self.notifier = notifier or NullNotifier()
        self.failure_threshold = failure_threshold

    async def reconcile(self) -> List[OrderRecord]:
        """
        Выполняет проход синхронизации и возвращает список заказов.

        Никогда не падает из-за отдельного заказа. Если сломался сам проход
        (например, хранилище), возвращается то, что удаётся прочитать.
        """
        try:
            orders = deduplicate_orders(await self.store.list_orders())
            candidates = [order for order in orders if is_sync_eligible(order)]
            if not candidates:
                return orders

            results = await asyncio.gather(
                *(self._sync_order(order) for order in candidates),
                return_exceptions=True,
            )
            for order, result in zip(candidates, results):
                if isinstance(result, BaseException):
                    logger.error("Unexpected sync error for order %s: %s", order.id, result)
            logger.info("Synced %s orders", len(candidates))
            return await self.store.list_orders()
        except Exception:
            logger.exception("Orders sync error, returning stored orders as is")
            return await self.store.list_orders()

    async def _sync_order(self, order: OrderRecord) -> OrderRecord:
        try:
            key = await self.key_resolver()
            upstream = await self.gateway.get_order_status(key, order.upstream_order_id)
        except Exception as e:
            return await self._record_failure(order, e)

        raw_status = upstream.get("status") if isinstance(upstream, dict) else None
        new_status = normalize_status(raw_status)
        if new_status == order.status:
            return order

        now = utcnow()
        changes = {
            "status": new_status.value,
            "upstream_data": upstream if isinstance(upstream, dict) else {"raw": upstream},
            "updated_at": now,
        }
        if new_status == OrderStatus.COMPLETED and order.status != OrderStatus.COMPLETED:
            changes["completed_at"] = now
        updated = replace(order, **changes)
        saved = await self.store.upsert_order(updated)
        logger.info(
            "Order %s (%s): %s -> %s",
            order.id, order.upstream_order_id, order.status, new_status.value,
        )
        await self._notify(saved)
        return saved

    async def _record_failure(self, order: OrderRecord, error: Exception) -> OrderRecord:
        logger.error("Sync failed for %s: %s", order.upstream_order_id, error)
        attempts = (order.sync_attempts or 0) + 1
        changes = {"sync_attempts": attempts}
        # Счётчик не сбрасывается после успешной синхронизации
        if attempts > self.failure_threshold:
            changes["status"] = OrderStatus.ERROR.value
            changes["error"] = f"Sync failed after {attempts} attempts"
        updated = replace(order, **changes)
        saved = await self.store.upsert_order(updated)
        if attempts > self.failure_threshold:
            await self._notify(saved)
        return saved

    async def _notify(self, order: OrderRecord) -> None:
        if not order.chat_id:
            return
        try:
            await self.notifier.notify_status(order)
        except Exception as e:
            logger.warning("Status notification failed for order %s: %s", order.id, e)
