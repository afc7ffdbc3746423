"""Сборка PanelService из настроек окружения."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from panelbridge.api.panel_client import PanelClient
from panelbridge.core.config import settings
from panelbridge.services.notifier import StatusNotifier
from panelbridge.services.order_store import OrderStore, SettingsStore
from panelbridge.services.panel_service import PanelService
from panelbridge.services.services_cache import MemoryBackend, ServicesCache


def build_services_cache() -> ServicesCache:
    """Redis, если задан REDIS_URL, иначе память процесса."""
    if settings.REDIS_URL:
        from panelbridge.db.redis_client import RedisClient

        return ServicesCache(RedisClient(settings.REDIS_URL), ttl=settings.SERVICES_CACHE_TTL)
    return ServicesCache(MemoryBackend(), ttl=settings.SERVICES_CACHE_TTL)


def build_panel_service(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    notifier: Optional[StatusNotifier] = None,
    gateway: Optional[PanelClient] = None,
) -> PanelService:
    if session_factory is None:
        from panelbridge.db.session import async_session_factory as session_factory

    gateway = gateway or PanelClient(
        api_url=settings.PANEL_API_URL,
        timeout=settings.PANEL_TIMEOUT,
        platform_keywords=settings.platform_keywords,
        content_keywords=settings.content_keywords,
    )
    return PanelService(
        gateway=gateway,
        order_store=OrderStore(session_factory),
        settings_store=SettingsStore(session_factory),
        notifier=notifier,
        services_cache=build_services_cache(),
        failure_threshold=settings.SYNC_FAILURE_THRESHOLD,
    )
