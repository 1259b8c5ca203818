"""Two-tier read cache for listing and search pages.

Reads go to a process-local `cachetools.TTLCache` first, then to Redis; a Redis
hit back-fills the local tier. Writes go to both tiers. The local TTL is
strictly shorter than the Redis TTLs so a stale local entry can outlive an
invalidation on another process by at most that TTL.

Redis is optional at runtime: errors and timeouts are treated as misses, and a
circuit breaker stops calling Redis at all while it keeps failing.
"""

import asyncio
import json
import time
from typing import Any, Callable, Optional

from cachetools import TTLCache
from redis.asyncio import Redis
from redis.exceptions import RedisError
from structlog import get_logger

from chandir.core.circuit_breaker import CircuitBreaker, CircuitBreakerError

logger = get_logger(__name__)

LISTING_NAMESPACE = "channels"
SEARCH_NAMESPACE = "search"


class CacheTier:
    """Process-local TTL cache in front of a distributed Redis cache.

    Args:
        redis: Async Redis client with ``decode_responses=True``.
        prefix: Key prefix shared by all processes (``nav``).
        local_ttl: Seconds an entry lives in the process-local tier.
        local_maxsize: Entry cap of the process-local tier.
        listing_ttl: Redis TTL for ``<prefix>:channels:*`` keys.
        search_ttl: Redis TTL for ``<prefix>:search:*`` keys.
        timeout: Deadline in seconds for each Redis round trip.
        breaker: Circuit breaker guarding Redis calls.
        clock: Time source for the local tier, injectable for tests.
    """

    def __init__(
        self,
        redis: Optional[Redis],
        prefix: str = "nav",
        local_ttl: float = 30,
        local_maxsize: int = 2048,
        listing_ttl: int = 300,
        search_ttl: int = 600,
        timeout: float = 0.5,
        breaker: Optional[CircuitBreaker] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if local_ttl >= min(listing_ttl, search_ttl):
            raise ValueError("local_ttl must be shorter than the distributed TTLs")
        self.redis = redis
        self.prefix = prefix
        self.listing_ttl = listing_ttl
        self.search_ttl = search_ttl
        self.timeout = timeout
        self.breaker = breaker or CircuitBreaker(name="redis-cache")
        self.local: TTLCache = TTLCache(maxsize=local_maxsize, ttl=local_ttl, timer=clock)
        self._generation = 0

    # -- keys -----------------------------------------------------------------

    def listing_key(self, sort: str, page: int, page_size: int) -> str:
        return f"{self.prefix}:{LISTING_NAMESPACE}:{sort}:{page}:{page_size}"

    def search_key(self, keyword: str, page: int, page_size: int, sort: str = "weight") -> str:
        key = f"{self.prefix}:{SEARCH_NAMESPACE}:{keyword.lower()}:{page}:{page_size}"
        if sort != "weight":
            key = f"{key}:{sort}"
        return key

    def _ttl_for(self, key: str) -> int:
        if key.startswith(f"{self.prefix}:{SEARCH_NAMESPACE}:"):
            return self.search_ttl
        return self.listing_ttl

    @property
    def generation(self) -> int:
        """Bumped on every invalidation; see `put`."""
        return self._generation

    # -- reads and writes -----------------------------------------------------

    async def get(self, key: str) -> Optional[Any]:
        value = self.local.get(key)
        if value is not None:
            return value

        raw = await self._call_redis("get", self._redis_get, key)
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("cache_entry_corrupt", key=key)
            return None
        self.local[key] = value
        return value

    async def put(self, key: str, value: Any, generation: Optional[int] = None) -> None:
        """Store `value` in both tiers.

        When `generation` is given and an invalidation happened since it was
        read, the value was computed from pre-mutation data and is dropped.
        """
        if generation is not None and generation != self._generation:
            logger.debug("cache_put_skipped_stale", key=key)
            return
        self.local[key] = value
        payload = json.dumps(value, default=str)
        await self._call_redis("set", self._redis_set, key, payload, self._ttl_for(key))

    async def invalidate_listings(self) -> int:
        """Drop every listing entry in both tiers. Returns Redis keys deleted."""
        self._generation += 1
        self.local.clear()
        deleted = await self._call_redis("invalidate", self._redis_delete_pattern,
                                         f"{self.prefix}:{LISTING_NAMESPACE}:*")
        logger.info("listing_cache_invalidated", redis_keys_deleted=deleted or 0)
        return deleted or 0

    # -- redis ----------------------------------------------------------------

    async def _call_redis(self, operation: str, func, *args) -> Any:
        if self.redis is None:
            return None
        try:
            return await self.breaker.execute(func, *args)
        except CircuitBreakerError:
            logger.debug("cache_redis_skipped_breaker_open", operation=operation)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            logger.warning("cache_redis_degraded", operation=operation, error=str(e))
        return None

    async def _redis_get(self, key: str) -> Optional[str]:
        return await asyncio.wait_for(self.redis.get(key), self.timeout)

    async def _redis_set(self, key: str, payload: str, ttl: int) -> None:
        await asyncio.wait_for(self.redis.set(key, payload, ex=ttl), self.timeout)

    async def _redis_delete_pattern(self, pattern: str) -> int:
        async def _scan_and_delete() -> int:
            deleted = 0
            batch = []
            async for key in self.redis.scan_iter(match=pattern, count=500):
                batch.append(key)
                if len(batch) >= 500:
                    deleted += await self.redis.delete(*batch)
                    batch = []
            if batch:
                deleted += await self.redis.delete(*batch)
            return deleted

        return await asyncio.wait_for(_scan_and_delete(), self.timeout * 4)
