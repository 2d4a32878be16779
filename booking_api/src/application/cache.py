"""
Key/value cache used by the caching pipeline behaviors.

Values are JSON strings. Keys are namespaced per tenant
("tenant:{id}:{key}", or "global:{key}" without a tenant) so pattern
invalidation never crosses tenants. Two backends are provided: an in-process
dictionary (default, single worker) and Redis.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Dict, List, Optional, Tuple
from uuid import UUID

import redis.asyncio as redis

from src.core.settings import AppSettings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def cache_namespace(tenant_id: Optional[UUID]) -> str:
    """Key prefix for a tenant (or the global namespace)."""
    return f"tenant:{tenant_id}:" if tenant_id else "global:"


# PUBLIC_INTERFACE
def tenant_cache_key(tenant_id: Optional[UUID], key: str) -> str:
    """Full storage key for `key` in the tenant's namespace."""
    return f"{cache_namespace(tenant_id)}{key}"


def _pattern_parts(pattern: str) -> List[str]:
    return [p.strip() for p in pattern.split("|") if p.strip()]


def _matches(stored_key: str, prefix: str, parts: List[str]) -> bool:
    if not stored_key.startswith(prefix):
        return False
    local = stored_key[len(prefix):]
    return any(local.startswith(part) or part in local for part in parts)


class CacheService(ABC):
    """Cache backend contract used by the pipeline behaviors."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str, expiration: timedelta) -> None:
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        ...

    @abstractmethod
    async def remove_by_pattern(self, pattern: str, prefix: str = "") -> int:
        """
        Remove keys under `prefix` whose remainder starts with or contains one of
        the '|'-separated alternatives of `pattern`. Returns the number removed.
        """

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryCacheService(CacheService):
    """Process-local cache with per-entry expiry (monotonic clock)."""

    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[str, float]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= time.monotonic():
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, expiration: timedelta) -> None:
        self._entries[key] = (value, time.monotonic() + expiration.total_seconds())

    async def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    async def remove_by_pattern(self, pattern: str, prefix: str = "") -> int:
        parts = _pattern_parts(pattern)
        if not parts:
            return 0
        doomed = [k for k in self._entries if _matches(k, prefix, parts)]
        for k in doomed:
            del self._entries[k]
        return len(doomed)

    def keys(self) -> List[str]:
        return list(self._entries)


class RedisCacheService(CacheService):
    """Redis-backed cache; pattern removal scans the tenant prefix and filters client-side."""

    def __init__(self, client: redis.Redis, key_prefix: str = "booking:") -> None:
        self.client = client
        self.key_prefix = key_prefix

    async def get(self, key: str) -> Optional[str]:
        value = await self.client.get(self.key_prefix + key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, expiration: timedelta) -> None:
        seconds = max(int(expiration.total_seconds()), 1)
        await self.client.set(self.key_prefix + key, value, ex=seconds)

    async def remove(self, key: str) -> None:
        await self.client.delete(self.key_prefix + key)

    async def remove_by_pattern(self, pattern: str, prefix: str = "") -> int:
        parts = _pattern_parts(pattern)
        if not parts:
            return 0
        full_prefix = self.key_prefix + prefix
        doomed: List[str] = []
        async for raw in self.client.scan_iter(match=f"{full_prefix}*", count=500):
            key = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            if _matches(key, full_prefix, parts):
                doomed.append(key)
        if doomed:
            await self.client.delete(*doomed)
        return len(doomed)

    async def close(self) -> None:
        await self.client.aclose()


# PUBLIC_INTERFACE
def create_cache_service(settings: AppSettings) -> CacheService:
    """Build the configured cache backend."""
    if settings.CACHE_BACKEND == "redis":
        logger.info("Using Redis cache at %s", settings.REDIS_URL)
        client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
        return RedisCacheService(client)
    logger.info("Using in-memory cache")
    return InMemoryCacheService()
