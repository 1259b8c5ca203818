"""
Redis Connection Module

Creates the asynchronous Redis client shared by the distributed cache tier and
the rate limiter, and probes it for the health endpoint.

**Security Note**: Use ``rediss://`` (REDIS_SSL) when Redis is reached over an
untrusted network, and never log REDIS_URL: it may contain the password.
"""

import asyncio
from typing import Any, Dict

from redis.asyncio import Redis
from redis.exceptions import RedisError
from structlog import get_logger

logger = get_logger(__name__)


def create_redis(settings) -> Redis:
    """Build a client whose every round trip is bounded by the socket timeout."""
    client = Redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
    )
    logger.debug("Redis client created")
    return client


async def check_redis_health(redis: Redis, timeout: float = 1.0) -> Dict[str, Any]:
    loop = asyncio.get_running_loop()
    start = loop.time()
    try:
        await asyncio.wait_for(redis.ping(), timeout)
    except (RedisError, OSError, asyncio.TimeoutError) as e:
        logger.error("redis_health_check_failed", error=str(e))
        return {"status": "unhealthy", "error": type(e).__name__}
    return {"status": "healthy", "latency_ms": round((loop.time() - start) * 1000, 2)}
