"""Composition root for the directory services.

`build_container` wires the engine, session factory, Redis client, cache tier,
rate limiter and domain services from `Settings`. Tests build a container from
their own engine and fake Redis with `DirectoryContainer.from_components`.
"""

from dataclasses import dataclass
from typing import Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from structlog import get_logger

from chandir.core.circuit_breaker import CircuitBreaker
from chandir.core.rate_limiting import RateLimiter, policies_from_settings
from chandir.domain.services import DirectoryService, LikeLedger, WeightEngine
from chandir.infrastructure.cache import CacheTier
from chandir.infrastructure.database import create_engine_from_settings, create_session_factory
from chandir.infrastructure.redis import create_redis
from chandir.infrastructure.repositories import (
    ChannelRepository,
    LikeRepository,
    SearchKeywordRepository,
)

logger = get_logger(__name__)


@dataclass
class DirectoryContainer:
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    redis: Redis
    cache: CacheTier
    rate_limiter: RateLimiter
    weight_engine: WeightEngine
    like_ledger: LikeLedger
    directory: DirectoryService

    @classmethod
    def from_components(
        cls,
        settings,
        engine: AsyncEngine,
        redis: Redis,
        cache: Optional[CacheTier] = None,
    ) -> "DirectoryContainer":
        session_factory = create_session_factory(engine)
        timeout = settings.STORE_TIMEOUT_SECONDS
        generic = settings.is_production

        cache = cache or CacheTier(
            redis,
            prefix=settings.CACHE_KEY_PREFIX,
            local_ttl=settings.CACHE_LOCAL_TTL_SECONDS,
            local_maxsize=settings.CACHE_LOCAL_MAXSIZE,
            listing_ttl=settings.CACHE_LISTING_TTL_SECONDS,
            search_ttl=settings.CACHE_SEARCH_TTL_SECONDS,
            timeout=settings.CACHE_TIMEOUT_SECONDS,
            breaker=CircuitBreaker(
                failure_threshold=settings.CACHE_BREAKER_FAILURE_THRESHOLD,
                reset_timeout=settings.CACHE_BREAKER_RESET_SECONDS,
                name="redis-cache",
            ),
        )
        rate_limiter = RateLimiter(
            redis,
            policies=policies_from_settings(settings),
            timeout=settings.REDIS_SOCKET_TIMEOUT,
            enabled=settings.RATE_LIMIT_ENABLED,
        )

        channels = ChannelRepository(session_factory)
        likes = LikeRepository(session_factory)
        keywords = SearchKeywordRepository(session_factory)

        weight_engine = WeightEngine(channels, timeout=timeout, generic_errors=generic)
        like_ledger = LikeLedger(
            likes,
            channels,
            weight_engine,
            cache,
            rate_limiter,
            timeout=timeout,
            generic_errors=generic,
        )
        directory = DirectoryService(
            channels,
            keywords,
            weight_engine,
            like_ledger,
            cache,
            rate_limiter,
            timeout=timeout,
            generic_errors=generic,
        )
        return cls(
            engine=engine,
            session_factory=session_factory,
            redis=redis,
            cache=cache,
            rate_limiter=rate_limiter,
            weight_engine=weight_engine,
            like_ledger=like_ledger,
            directory=directory,
        )

    async def aclose(self) -> None:
        await self.redis.aclose()
        await self.engine.dispose()
        logger.info("container_closed")


def build_container(settings) -> DirectoryContainer:
    return DirectoryContainer.from_components(
        settings,
        engine=create_engine_from_settings(settings),
        redis=create_redis(settings),
    )
