"""
Операции, доступные HTTP API и Telegram боту.

PanelService собирает вместе клиент панели, хранилище, синхронизацию и
размещение заказов. Ошибки панели (PanelAPIError) пробрасываются вызывающему
коду, кроме размещения и синхронизации, где они фиксируются в заказе.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from panelbridge.core.config import settings
from panelbridge.services.models import OrderRecord, PlacementResult
from panelbridge.services.notifier import StatusNotifier
from panelbridge.services.order_store import OrderStore, SettingsStore
from panelbridge.services.panel_keys import PanelKeyResolver
from panelbridge.services.placement import OrderPlacementService
from panelbridge.services.reconciler import OrderReconciler
from panelbridge.services.services_cache import ServicesCache

logger = logging.getLogger(__name__)

MIN_PANEL_KEY_LENGTH = 10


class SettingsValidationError(ValueError):
    """Некорректные данные настроек; ничего не сохраняется."""


class OrderNotFoundError(LookupError):
    """Заказ не найден ни по локальному id, ни по id в панели."""


class PanelService:
    """Фасад над панелью и локальными заказами."""

    def __init__(
        self,
        gateway,
        order_store: OrderStore,
        settings_store: SettingsStore,
        notifier: Optional[StatusNotifier] = None,
        services_cache: Optional[ServicesCache] = None,
        failure_threshold: Optional[int] = None,
    ):
        self.gateway = gateway
        self.order_store = order_store
        self.settings_store = settings_store
        self.services_cache = services_cache
        self.resolve_key = PanelKeyResolver(settings_store)
        threshold = failure_threshold if failure_threshold is not None else settings.SYNC_FAILURE_THRESHOLD
        self.reconciler = OrderReconciler(
            order_store, gateway, self.resolve_key, notifier=notifier, failure_threshold=threshold
        )
        self.placement = OrderPlacementService(order_store, gateway, self.resolve_key, notifier=notifier)

    async def list_services(self, key: Optional[str] = None) -> tuple[List[dict], bool]:
        """
        Отфильтрованные услуги панели.

        Returns:
            (services, from_cache)
        """
        if self.services_cache is not None and not key:
            cached = await self.services_cache.get()
            if cached:
                return cached, True

        services = await self.gateway.list_services(await self.resolve_key(key))
        if self.services_cache is not None and not key and services:
            await self.services_cache.set(services)
        return services, False

    async def get_balance(self, key: Optional[str] = None) -> Any:
        return await self.gateway.get_balance(await self.resolve_key(key))

    async def place_order(
        self,
        service_id: Any,
        link: str,
        quantity: Optional[int] = None,
        runs: Optional[int] = None,
        interval: Optional[int] = None,
        chat_id: Optional[Any] = None,
    ) -> PlacementResult:
        return await self.placement.place(
            service_id=service_id,
            link=link,
            quantity=quantity,
            runs=runs,
            interval=interval,
            chat_id=chat_id,
        )

    async def get_order_status(self, ref: Any) -> Dict[str, Any]:
        """
        Локальный заказ и свежий ответ панели по нему.

        Raises:
            OrderNotFoundError: если заказ неизвестен.
            PanelAPIError: если панель не ответила.
        """
        local = await self.order_store.find_order(ref)
        if local is None:
            raise OrderNotFoundError(f"Order {ref} not found")
        if not local.upstream_order_id:
            return {"local": local, "status": None}
        status = await self.gateway.get_order_status(await self.resolve_key(), local.upstream_order_id)
        return {"local": local, "status": status}

    async def list_orders(self) -> List[OrderRecord]:
        """Список заказов после прохода синхронизации."""
        return await self.reconciler.reconcile()

    async def get_settings(self) -> Dict[str, Any]:
        return await self.settings_store.get_settings()

    async def update_settings(self, panel_key: Any) -> Dict[str, Any]:
        """
        Сохраняет ключ панели.

        Raises:
            SettingsValidationError: ключ не строка или короче 10 символов после trim.
        """
        if not isinstance(panel_key, str) or len(panel_key.strip()) < MIN_PANEL_KEY_LENGTH:
            raise SettingsValidationError("Invalid panel API key")
        stored = await self.settings_store.set_settings({"panel_key": panel_key.strip()})
        if self.services_cache is not None:
            await self.services_cache.evict()
        logger.info("Panel API key updated")
        return stored
