"""Размещение заказа: локальная запись -> панель -> итоговый статус."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from panelbridge.api.panel_client import PanelAPIError
from panelbridge.core.status import OrderStatus, normalize_status
from panelbridge.services.models import PlacementResult, utcnow
from panelbridge.services.notifier import NullNotifier, StatusNotifier

logger = logging.getLogger(__name__)


class OrderPlacementService:
    """
    Создаёт заказ в статусе placing, отправляет его в панель и фиксирует
    результат: upstream_order_id и нормализованный статус либо error.
    """

    def __init__(
        self,
        store,
        gateway,
        key_resolver: Callable[[], Awaitable[str]],
        notifier: Optional[StatusNotifier] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.key_resolver = key_resolver
        self.notifier = notifier or NullNotifier()

    async def place(
        self,
        service_id: Any,
        link: str,
        quantity: Optional[int] = None,
        runs: Optional[int] = None,
        interval: Optional[int] = None,
        chat_id: Optional[Any] = None,
    ) -> PlacementResult:
        """
        Размещает заказ.

        Ошибки панели не пробрасываются: заказ сохраняется со статусом error,
        а результат содержит текст ошибки. Ошибки хранилища пробрасываются.
        Ключ читается до записи заказа: без ключа заказ не создаётся.
        """
        key = await self.key_resolver()
        now = utcnow()
        order = await self.store.upsert_order(
            {
                "created_at": now,
                "updated_at": now,
                "service_id": service_id,
                "link": link,
                "quantity": quantity,
                "runs": runs,
                "interval": interval,
                "status": OrderStatus.PLACING.value,
                "chat_id": chat_id,
            }
        )

        try:
            response = await self.gateway.place_order(
                key,
                service_id=service_id,
                link=link,
                quantity=quantity,
                runs=runs,
                interval=interval,
            )
        except PanelAPIError as e:
            logger.error("Order placement error: %s", e)
            failed = await self.store.upsert_order(
                {
                    "id": order.id,
                    "status": OrderStatus.ERROR.value,
                    "error": str(e),
                    "updated_at": utcnow(),
                }
            )
            await self._notify(failed)
            return PlacementResult(order=failed, upstream_response=None, error=str(e))

        raw_status = "processing"
        upstream_id = None
        if isinstance(response, dict):
            raw_status = response.get("status") or "processing"
            upstream_id = response.get("order")
        placed = await self.store.upsert_order(
            {
                "id": order.id,
                "upstream_order_id": str(upstream_id) if upstream_id not in (None, "") else None,
                "status": normalize_status(raw_status).value,
                "updated_at": utcnow(),
            }
        )
        logger.info("Order %s placed, panel order %s", placed.id, placed.upstream_order_id)
        await self._notify(placed)
        return PlacementResult(order=placed, upstream_response=response)

    async def _notify(self, order) -> None:
        if not order.chat_id:
            return
        try:
            await self.notifier.notify_status(order)
        except Exception as e:
            logger.warning("Status notification failed for order %s: %s", order.id, e)
