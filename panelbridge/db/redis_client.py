"""
Redis как хранилище кэша услуг панели.

Реализует интерфейс KeyValueBackend (get_json / set_json / delete), поэтому
ServicesCache работает с ним так же, как с MemoryBackend.
"""

import json
import logging
from typing import Any, Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from panelbridge.core.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Ленивое подключение к Redis; значения хранятся как JSON-строки."""

    def __init__(self, url: Optional[str] = None, max_connections: int = 10):
        self.url = url or settings.REDIS_URL
        self.max_connections = max_connections
        self.redis: Optional[Redis] = None
        self._pool: Optional[ConnectionPool] = None

    async def _client(self) -> Redis:
        if self.redis is None:
            # Формат: redis://:password@host:port/db
            self._pool = ConnectionPool.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=self.max_connections,
            )
            self.redis = Redis(connection_pool=self._pool)
        return self.redis

    async def disconnect(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None

    async def get_json(self, key: str) -> Optional[Any]:
        """
        Значение по ключу или None.

        Недоступный Redis и битый JSON считаются промахом кэша.
        """
        try:
            raw = await (await self._client()).get(key)
        except RedisError as e:
            logger.warning("Redis get %s failed: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Redis key %s holds invalid JSON, ignoring", key)
            return None

    async def set_json(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        try:
            result = await (await self._client()).set(key, json.dumps(value, ensure_ascii=False), ex=expire)
        except RedisError as e:
            logger.warning("Redis set %s failed: %s", key, e)
            return False
        return bool(result)

    async def delete(self, key: str) -> int:
        """Удаляет ключ; при недоступном Redis возвращает 0."""
        try:
            return await (await self._client()).delete(key)
        except RedisError as e:
            logger.warning("Redis delete %s failed: %s", key, e)
            return 0
