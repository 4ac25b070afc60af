"""
Service token cache manager.

Mints HS256 JWTs for the diagnosis service and keeps the current one in a
single cache slot. The slot is read-check-refresh: a token with less than the
refresh buffer left is replaced. Concurrent refreshes are not serialized; the
last write wins and both tokens stay valid.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt

from teleconsult.application.ports.services.cache_service import CacheService
from teleconsult.core.config import ServiceTokenSettings
from teleconsult.core.exceptions import CacheError
from teleconsult.domain.value_objects import ServiceToken

logger = logging.getLogger("teleconsult.service_token")

MIN_CACHE_TTL_SECONDS = 60


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ServiceTokenManager:
    def __init__(
        self,
        cache: CacheService,
        settings: ServiceTokenSettings,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._cache = cache
        self._settings = settings
        self._clock = clock

    async def get_valid_token(self) -> str:
        """Return a cached token with enough validity left, minting one if needed."""
        cached = await self._read_cached()
        now = self._clock()
        if cached is not None and cached.is_usable(self._settings.refresh_buffer_seconds, now):
            return cached.token

        token = self._mint(now)
        await self._store(token, now)
        logger.info("Issued new diagnosis service token")
        return token.token

    async def refresh_token(self) -> str:
        """Discard the cached token and mint a fresh one."""
        try:
            await self._cache.delete(self._settings.cache_key)
        except CacheError as e:
            logger.warning(f"Failed to clear cached service token: {e}")
        return await self.get_valid_token()

    async def get_token_info(self) -> Optional[Dict[str, Any]]:
        cached = await self._read_cached()
        if cached is None:
            return None
        now = self._clock()
        return {
            "issued_at": cached.issued_at.isoformat(),
            "expires_at": cached.expires_at.isoformat(),
            "remaining_seconds": max(cached.remaining_seconds(now), 0),
            "needs_refresh": not cached.is_usable(self._settings.refresh_buffer_seconds, now),
        }

    def decode(self, token: str) -> Dict[str, Any]:
        """Verify a token minted by this manager and return its claims."""
        return jwt.decode(
            token,
            self._settings.secret,
            algorithms=[self._settings.algorithm],
            audience=self._settings.audience,
            issuer=self._settings.issuer,
        )

    def _mint(self, now: datetime) -> ServiceToken:
        expires_at = now + timedelta(seconds=self._settings.expires_in_seconds)
        payload = {
            "sub": self._settings.subject,
            "username": self._settings.username,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "aud": self._settings.audience,
            "iss": self._settings.issuer,
            "service": True,
        }
        encoded = jwt.encode(payload, self._settings.secret, algorithm=self._settings.algorithm)
        return ServiceToken(token=encoded, issued_at=now, expires_at=expires_at)

    async def _read_cached(self) -> Optional[ServiceToken]:
        try:
            raw = await self._cache.get(self._settings.cache_key)
        except CacheError as e:
            logger.warning(f"Service token cache read failed, minting a new token: {e}")
            return None
        if not raw:
            return None
        try:
            return ServiceToken.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding malformed cached service token: {e}")
            return None

    async def _store(self, token: ServiceToken, now: datetime) -> None:
        ttl = max(
            int((token.expires_at - now).total_seconds()) - self._settings.refresh_buffer_seconds,
            MIN_CACHE_TTL_SECONDS,
        )
        try:
            await self._cache.set(self._settings.cache_key, token.to_dict(), ttl)
        except CacheError as e:
            logger.warning(f"Failed to cache service token: {e}")
