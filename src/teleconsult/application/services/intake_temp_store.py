"""
Temporary intake data keyed by session id.

Three entries per intake: ``<sid>`` (symptoms and diagnosis),
``<sid>_selection`` (everything needed to create a consultation) and
``<sid>_diagnosis`` (the raw diagnosis). All live under ``temp:``.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from teleconsult.application.ports.services.cache_service import CacheService
from teleconsult.core.exceptions import CacheError

logger = logging.getLogger("teleconsult.sessions")

TEMP_PREFIX = "temp:"
SELECTION_SUFFIX = "_selection"
DIAGNOSIS_SUFFIX = "_diagnosis"


def base_key(session_id: str) -> str:
    return session_id


def selection_key(session_id: str) -> str:
    return f"{session_id}{SELECTION_SUFFIX}"


def diagnosis_key(session_id: str) -> str:
    return f"{session_id}{DIAGNOSIS_SUFFIX}"


def intake_keys(session_id: str):
    return [base_key(session_id), selection_key(session_id), diagnosis_key(session_id)]


class IntakeTempStore:
    def __init__(self, cache: CacheService, ttl_seconds: int = 3600) -> None:
        self._cache = cache
        self._ttl = ttl_seconds

    async def put(self, key: str, value: Dict[str, Any], ttl_seconds: Optional[int] = None) -> None:
        await self._cache.set(TEMP_PREFIX + key, value, ttl_seconds or self._ttl)

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Raises CacheError on substrate failure; callers decide whether to fall back."""
        value = await self._cache.get(TEMP_PREFIX + key)
        return value if isinstance(value, dict) else None

    async def delete_many(self, keys: Iterable[str]) -> int:
        """Best-effort delete. Returns how many deletes failed."""
        failures = 0
        for key in keys:
            try:
                await self._cache.delete(TEMP_PREFIX + key)
            except CacheError as e:
                failures += 1
                logger.warning(f"Failed to clean up temp key {key}: {e}")
        return failures
