"""Определение действующего ключа API панели."""

from __future__ import annotations

from typing import Optional

from panelbridge.core.config import settings
from panelbridge.services.order_store import SettingsStore


class PanelKeyResolver:
    """
    Возвращает ключ панели для очередного запроса.

    Приоритет: явно переданный ключ, затем ключ из настроек в БД, затем
    PANEL_API_KEY из окружения. Настройки читаются заново при каждом вызове.
    """

    def __init__(self, settings_store: SettingsStore, fallback_key: Optional[str] = None):
        self._settings_store = settings_store
        self._fallback_key = fallback_key if fallback_key is not None else settings.PANEL_API_KEY

    async def __call__(self, key: Optional[str] = None) -> str:
        if key:
            return key
        stored = await self._settings_store.get_settings()
        return stored.get("panel_key") or self._fallback_key or ""
