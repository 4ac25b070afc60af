"""
In-process cache adapter.

Used when Redis is disabled (local development, tests). Values are copied
through JSON so callers never share mutable state with the cache.
"""

import json
import time
from typing import Any, Callable, Dict, Optional, Tuple

from teleconsult.application.ports.services.cache_service import CacheService


class InMemoryCacheService(CacheService):
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[float, str]] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, raw = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._entries[key] = (self._clock() + max(int(ttl_seconds), 1), json.dumps(value, default=str))

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def ttl(self, key: str) -> Optional[float]:
        """Remaining lifetime of ``key`` in seconds."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        return entry[0] - self._clock()

    def keys(self):
        return list(self._entries)
