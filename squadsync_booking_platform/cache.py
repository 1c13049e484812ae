"""
Redis caching layer for court availability and listings.
"""

import asyncio
import json
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from .config import get_settings
from .utils.exceptions import ConcurrencyError

logger = logging.getLogger(__name__)


class CacheKeyBuilder:
    """Helper class for building consistent cache keys."""

    @staticmethod
    def court_slots(court_id: str, day: str) -> str:
        """Build cache key for a court's slot grid on a given day."""
        return f"court:slots:{court_id}:{day}"

    @staticmethod
    def court_booking_lock(court_id: str) -> str:
        """Build cache key for the court booking lock."""
        return f"lock:booking:court:{court_id}"

    @staticmethod
    def equipment_booking_lock(equipment_id: str) -> str:
        """Build cache key for the equipment booking lock."""
        return f"lock:booking:equipment:{equipment_id}"


class RedisCache:
    """Redis cache manager with connection handling and operations."""

    def __init__(self):
        self.client: Optional[Redis] = None
        self.pool: Optional[redis.ConnectionPool] = None

    async def initialize(self) -> None:
        """
        Initialize Redis connection pool and client.

        A failed connection leaves the cache disabled instead of stopping the
        application; every operation then behaves as a cache miss.
        """
        settings = get_settings()

        try:
            self.pool = redis.ConnectionPool.from_url(
                settings.redis_url,
                max_connections=settings.redis_max_connections,
                retry_on_timeout=True,
                health_check_interval=30
            )
            self.client = Redis(connection_pool=self.pool)
            await self.client.ping()
            logger.info("Redis cache initialized successfully")
        except (RedisError, OSError) as e:
            logger.error("Failed to connect to Redis, caching disabled: %s", e)
            await self.close()

    async def close(self) -> None:
        """Close Redis connections."""
        if self.client:
            await self.client.aclose()
        if self.pool:
            await self.pool.disconnect()
        self.client = None
        self.pool = None
        logger.info("Redis cache connections closed")

    @property
    def available(self) -> bool:
        return self.client is not None

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        if not self.client:
            return None

        try:
            value = await self.client.get(key)
            if value:
                return json.loads(value)
            return None
        except (RedisError, ValueError) as e:
            logger.warning("Failed to get cache key %s: %s", key, e)
            return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None
    ) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        if not self.client:
            return False

        try:
            serialized_value = json.dumps(value, default=str)
            if ttl:
                await self.client.setex(key, ttl, serialized_value)
            else:
                await self.client.set(key, serialized_value)
            return True
        except (RedisError, TypeError) as e:
            logger.warning("Failed to set cache key %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        if not self.client:
            return False

        try:
            await self.client.delete(key)
            return True
        except RedisError as e:
            logger.warning("Failed to delete cache key %s: %s", key, e)
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a pattern.

        Args:
            pattern: Pattern to match (e.g., "courts:list:*")

        Returns:
            Number of keys deleted
        """
        if not self.client:
            return 0

        try:
            keys = [key async for key in self.client.scan_iter(match=pattern)]
            if keys:
                await self.client.delete(*keys)
            return len(keys)
        except RedisError as e:
            logger.warning(f"Failed to delete keys with pattern {pattern}: {e}")
            return 0

    async def zcard(self, key: str) -> int:
        """Get the number of members in a sorted set."""
        if not self.client:
            return 0

        try:
            return await self.client.zcard(key)
        except RedisError as e:
            logger.warning(f"Failed to zcard key {key}: {e}")
            return 0

    async def zrange(self, key: str, start: int, end: int, withscores: bool = False) -> List:
        """Get members from a sorted set by index range."""
        if not self.client:
            return []

        try:
            return await self.client.zrange(key, start, end, withscores=withscores)
        except RedisError as e:
            logger.warning(f"Failed to zrange key {key}: {e}")
            return []

    async def record_hit(self, key: str, now: float, window: int) -> int:
        """
        Record a request in a sliding window and return the count before it.

        Returns 0 when Redis is unavailable so callers fail open.
        """
        if not self.client:
            return 0

        try:
            pipe = self.client.pipeline()
            pipe.zremrangebyscore(key, 0, now - window)
            pipe.zcard(key)
            pipe.zadd(key, {f"{now}:{uuid.uuid4().hex[:8]}": now})
            pipe.expire(key, window * 2)
            results = await pipe.execute()
            return int(results[1])
        except RedisError as e:
            logger.warning(f"Failed to record rate limit hit for {key}: {e}")
            return 0


class DistributedLock:
    """Distributed lock implementation using Redis."""

    RELEASE_SCRIPT = """
    if redis.call("GET", KEYS[1]) == ARGV[1] then
        return redis.call("DEL", KEYS[1])
    else
        return 0
    end
    """

    def __init__(self, cache: RedisCache, key: str, timeout: int = 10):
        """
        Initialize distributed lock.

        Args:
            cache: Redis cache instance
            key: Lock key
            timeout: Lock timeout in seconds
        """
        self.cache = cache
        self.key = key
        self.timeout = timeout
        self.identifier = uuid.uuid4().hex
        self.held = False

    async def acquire(self, wait: float = 5.0) -> bool:
        """
        Acquire the distributed lock, polling until ``wait`` seconds pass.

        Returns:
            True if lock acquired, False otherwise
        """
        if not self.cache.client:
            return False

        loop = asyncio.get_running_loop()
        deadline = loop.time() + wait

        while True:
            try:
                acquired = await self.cache.client.set(
                    self.key,
                    self.identifier,
                    nx=True,
                    ex=self.timeout
                )
            except RedisError as e:
                logger.warning(f"Failed to acquire lock {self.key}: {e}")
                return False

            if acquired:
                self.held = True
                return True

            if loop.time() >= deadline:
                return False

            await asyncio.sleep(0.1)

    async def release(self) -> bool:
        """Release the distributed lock if this instance holds it."""
        if not self.cache.client or not self.held:
            return False

        try:
            result = await self.cache.client.eval(
                self.RELEASE_SCRIPT, 1, self.key, self.identifier
            )
            self.held = False
            return bool(result)
        except RedisError as e:
            logger.warning(f"Failed to release lock {self.key}: {e}")
            return False


cache = RedisCache()


async def init_cache() -> None:
    """Initialize the global cache instance."""
    await cache.initialize()


async def close_cache() -> None:
    """Close the global cache instance."""
    await cache.close()


def get_cache() -> RedisCache:
    """Get the global cache instance."""
    return cache


@asynccontextmanager
async def distributed_lock(key: str, timeout: int = 10):
    """
    Context manager for distributed locks.

    Without Redis the block runs unlocked and the database constraints are the
    only guard.

    Raises:
        ConcurrencyError: When another holder keeps the lock past the wait time
    """
    lock = DistributedLock(cache, key, timeout)
    if cache.available:
        if not await lock.acquire():
            raise ConcurrencyError(f"Resource is busy, could not acquire {key}")
    try:
        yield lock
    finally:
        await lock.release()


class CacheInvalidator:
    """Helper class for cache invalidation strategies."""

    @staticmethod
    async def invalidate_court_caches(court_id: Optional[str] = None) -> None:
        """Invalidate slot grids for one court, or for every court."""
        if court_id:
            await cache.delete_pattern(f"court:slots:{court_id}:*")
        else:
            await cache.delete_pattern("court:slots:*")
        logger.debug(f"Invalidated court caches for {court_id or 'all courts'}")


class CacheTTL:
    """Cache TTL constants for different data types."""

    COURT_SLOTS = 60  # 1 minute
    LOCK_TIMEOUT = 10
