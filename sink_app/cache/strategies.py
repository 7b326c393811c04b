"""
Cache strategies using Strategy Pattern.
Allows switching between different cache backends (Redis, In-Memory, Null).

The link service caches serialized link records by slug so redirects
skip the database on a hit.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    All methods are async because cache operations involve I/O (network for Redis).
    Cache failures are never fatal: a failed get is a miss, a failed set is skipped.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the cached value, or None on a miss."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        """Cache ``value`` for ``ttl`` seconds."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Drop ``key``; True if it was cached."""
        pass

    @abstractmethod
    async def clear(self) -> bool:
        pass


class RedisCache(CacheStrategy):
    """Redis cache, shared by every app process."""

    def __init__(self, redis_client):
        self.redis = redis_client

    async def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(key)
        except Exception as e:
            logger.warning("Redis get error for %s: %s", key, e)
            return None
        return value.decode("utf-8") if value else None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        try:
            return bool(self.redis.setex(key, ttl, value))
        except Exception as e:
            logger.warning("Redis set error for %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return bool(self.redis.delete(key))
        except Exception as e:
            logger.warning("Redis delete error for %s: %s", key, e)
            return False

    async def clear(self) -> bool:
        try:
            self.redis.flushdb()
            return True
        except Exception as e:
            logger.warning("Redis clear error: %s", e)
            return False


class InMemoryCache(CacheStrategy):
    """
    Per-process dict cache with lazy TTL expiry.

    Good for development and tests; not shared between processes.
    """

    def __init__(self, clock=time.monotonic):
        self._cache: Dict[str, Tuple[str, float]] = {}
        self._clock = clock

    async def get(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._cache[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        self._cache[key] = (value, self._clock() + ttl)
        return True

    async def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None

    async def clear(self) -> bool:
        self._cache.clear()
        return True


class NullCache(CacheStrategy):
    """Null Object Pattern: every get is a miss, every write is a no-op."""

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        return True

    async def delete(self, key: str) -> bool:
        return True

    async def clear(self) -> bool:
        return True
