"""
Key-value cache interface.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class CacheService(ABC):
    """JSON-serializable values keyed by string, each with a TTL."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the stored value or None when absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store ``value`` for ``ttl_seconds``."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is not an error."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None
