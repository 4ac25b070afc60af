"""
Redis-backed cache adapter.
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from teleconsult.application.ports.services.cache_service import CacheService
from teleconsult.core.config import RedisSettings
from teleconsult.core.exceptions import CacheError

logger = logging.getLogger("teleconsult.cache")


class RedisCacheService(CacheService):
    """Stores JSON-encoded values under ``<namespace>:<key>`` with SETEX."""

    def __init__(self, settings: RedisSettings, client: Optional[aioredis.Redis] = None) -> None:
        self._settings = settings
        self._client = client or aioredis.from_url(
            settings.url,
            decode_responses=True,
            socket_timeout=settings.socket_timeout,
        )

    def _key(self, key: str) -> str:
        return f"{self._settings.namespace}:{key}" if self._settings.namespace else key

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self._client.get(self._key(key))
        except RedisError as e:
            raise CacheError(f"Cache read failed for {key}", {"error": str(e)}) from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise CacheError(f"Corrupt cache entry for {key}", {"error": str(e)}) from e

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            await self._client.setex(self._key(key), max(int(ttl_seconds), 1), json.dumps(value, default=str))
        except RedisError as e:
            raise CacheError(f"Cache write failed for {key}", {"error": str(e)}) from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._key(key))
        except RedisError as e:
            raise CacheError(f"Cache delete failed for {key}", {"error": str(e)}) from e

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.close()
