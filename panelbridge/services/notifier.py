"""Порт уведомлений об изменении статуса заказа."""

from __future__ import annotations

from typing import Protocol

from panelbridge.services.models import OrderRecord


class StatusNotifier(Protocol):
    """Получатель уведомлений; ядро знает только этот интерфейс."""

    async def notify_status(self, order: OrderRecord) -> None:
        ...


class NullNotifier:
    """Ничего не делает - используется, когда бот не подключён."""

    async def notify_status(self, order: OrderRecord) -> None:
        return None
