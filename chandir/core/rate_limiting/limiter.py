"""Fixed-window rate limiter over Redis counters.

Each check increments ``rate:<scope>:<subject>`` and arms the window expiry on
the first hit. Counts above the limit are rejected until the key expires. A
burst straddling a window boundary can admit up to twice the limit.

Redis failures fail open: a limiter outage must never take reads down.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from chandir.core.exceptions import RateLimitExceededError, ValidationError
from chandir.core.rate_limiting.policies import (
    ADMIN,
    API_IP,
    GLOBAL_IP,
    LIKE,
    PAGE_IP,
    SEARCH,
    RateLimitPolicy,
    build_policies,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    count: int
    limit: int
    retry_after: int = 0


class RateLimiter:
    """Redis-backed fixed-window limiter with named policies.

    Args:
        redis: Async Redis client (``decode_responses`` not required).
        policies: Scope name to policy table, see `build_policies`.
        timeout: Deadline in seconds for each Redis round trip.
        enabled: When False every check is allowed without touching Redis.
    """

    def __init__(
        self,
        redis: Redis,
        policies: Optional[Dict[str, RateLimitPolicy]] = None,
        timeout: float = 0.5,
        enabled: bool = True,
    ):
        self.redis = redis
        self.policies = policies or build_policies()
        self.timeout = timeout
        self.enabled = enabled

    @staticmethod
    def key_for(scope: str, subject: str) -> str:
        return f"rate:{scope}:{subject}"

    async def hit(
        self, scope: str, subject: str, max_requests: int, window_seconds: int
    ) -> RateLimitResult:
        """Count one request against ``scope``/``subject``."""
        if not subject:
            raise ValidationError("Rate limit subject cannot be empty")
        if not self.enabled:
            return RateLimitResult(allowed=True, count=0, limit=max_requests)

        key = self.key_for(scope, subject)
        try:
            count, ttl = await asyncio.wait_for(
                self._increment(key, window_seconds), self.timeout
            )
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            logger.warning("rate_limit_check_failed_open", scope=scope, error=str(e))
            return RateLimitResult(allowed=True, count=0, limit=max_requests)

        if count <= max_requests:
            return RateLimitResult(allowed=True, count=count, limit=max_requests)

        retry_after = ttl if ttl > 0 else window_seconds
        logger.warning(
            "rate_limit_exceeded",
            scope=scope,
            subject=subject[:8],
            count=count,
            limit=max_requests,
            retry_after=retry_after,
        )
        return RateLimitResult(
            allowed=False, count=count, limit=max_requests, retry_after=retry_after
        )

    async def _increment(self, key: str, window_seconds: int) -> Tuple[int, int]:
        count = int(await self.redis.incr(key))
        if count == 1:
            await self.redis.expire(key, window_seconds)
            return count, window_seconds
        ttl = int(await self.redis.ttl(key))
        if ttl < 0:
            # Expiry was lost between INCR and EXPIRE on a previous hit.
            await self.redis.expire(key, window_seconds)
            ttl = window_seconds
        return count, ttl

    async def check(
        self, scope: str, subject: str, max_requests: int, window_seconds: int
    ) -> bool:
        result = await self.hit(scope, subject, max_requests, window_seconds)
        return result.allowed

    async def enforce(self, policy: RateLimitPolicy, subject: str) -> RateLimitResult:
        """Count a hit and raise when the window is exhausted.

        Raises:
            RateLimitExceededError: Carries the seconds until the window resets.
        """
        result = await self.hit(
            policy.scope, subject, policy.max_requests, policy.window_seconds
        )
        if not result.allowed:
            raise RateLimitExceededError(retry_after=result.retry_after)
        return result

    async def enforce_scope(self, scope: str, subject: str) -> RateLimitResult:
        return await self.enforce(self.policies[scope], subject)

    async def check_like(self, fingerprint: str) -> RateLimitResult:
        return await self.enforce_scope(LIKE, fingerprint)

    async def check_search(self, fingerprint: str) -> RateLimitResult:
        return await self.enforce_scope(SEARCH, fingerprint)

    async def check_admin(self, subject: str) -> RateLimitResult:
        return await self.enforce_scope(ADMIN, subject)

    async def check_global_ip(self, ip: str) -> RateLimitResult:
        return await self.enforce_scope(GLOBAL_IP, ip)

    async def check_page_ip(self, ip: str) -> RateLimitResult:
        return await self.enforce_scope(PAGE_IP, ip)

    async def check_api_ip(self, ip: str) -> RateLimitResult:
        return await self.enforce_scope(API_IP, ip)
