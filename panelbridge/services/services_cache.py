"""
Кэш списка услуг панели с явным TTL и явной очисткой.

Кэш принадлежит внешнему слою (HTTP API, бот) и передаётся в PanelService;
синхронизация заказов и клиент панели о нём не знают.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple


class KeyValueBackend(Protocol):
    async def get_json(self, key: str) -> Optional[Any]:
        ...

    async def set_json(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        ...

    async def delete(self, key: str) -> int:
        ...


class MemoryBackend:
    """Хранилище в памяти процесса с истечением по времени."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: Dict[str, Tuple[Optional[float], Any]] = {}

    async def get_json(self, key: str) -> Optional[Any]:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at is not None and self._clock() >= expires_at:
            self._data.pop(key, None)
            return None
        return value

    async def set_json(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        expires_at = self._clock() + expire if expire else None
        self._data[key] = (expires_at, value)
        return True

    async def delete(self, key: str) -> int:
        return 1 if self._data.pop(key, None) is not None else 0


class ServicesCache:
    """Отфильтрованный список услуг на ttl секунд."""

    KEY = "panelbridge:services"

    def __init__(self, backend: KeyValueBackend, ttl: int):
        self.backend = backend
        self.ttl = ttl

    async def get(self) -> Optional[list]:
        return await self.backend.get_json(self.KEY)

    async def set(self, services: list) -> None:
        await self.backend.set_json(self.KEY, services, expire=self.ttl)

    async def evict(self) -> None:
        await self.backend.delete(self.KEY)
