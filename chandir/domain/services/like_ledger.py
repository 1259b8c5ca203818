"""Per-device like toggling.

A toggle flips the presence of one ``(channel, fingerprint)`` record and keeps
the channel's like counter and like-bonus weight in step with it. The
repository writes all three in one transaction. Toggles on the same pair are
serialized in-process by a keyed `asyncio.Lock`; across processes the record's
primary key decides, and the loser re-reads status instead of touching
counters.
"""

import asyncio
import weakref
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from structlog import get_logger

from chandir.core.exceptions import ChannelNotFoundError, ConflictError, ValidationError
from chandir.core.rate_limiting import RateLimiter
from chandir.core.store import run_store_operation
from chandir.domain.interfaces.repositories import IChannelRepository, ILikeRepository
from chandir.domain.services.weight_engine import WeightEngine
from chandir.domain.value_objects.identifiers import ChannelId, Fingerprint
from chandir.infrastructure.cache import CacheTier

logger = get_logger(__name__)


@dataclass(frozen=True)
class LikeStatus:
    liked: bool
    count: int

    def to_dict(self) -> dict:
        return {"liked": self.liked, "count": self.count}


class LikeLedger:
    def __init__(
        self,
        likes: ILikeRepository,
        channels: IChannelRepository,
        weight_engine: WeightEngine,
        cache: CacheTier,
        rate_limiter: RateLimiter,
        timeout: float = 5.0,
        generic_errors: bool = False,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.likes = likes
        self.channels = channels
        self.weight_engine = weight_engine
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.generic_errors = generic_errors
        self.now = now
        self._locks: "weakref.WeakValueDictionary[Tuple[str, str], asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, key: Tuple[str, str]) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _store(self, operation: str, awaitable, subject: Optional[str] = None):
        return await run_store_operation(
            operation,
            awaitable,
            timeout=self.timeout,
            subject=subject,
            generic_messages=self.generic_errors,
        )

    async def toggle(self, channel_id: str, fingerprint: str) -> LikeStatus:
        """Like the channel if this device has not, otherwise remove the like.

        Raises:
            ValidationError: Malformed channel id or fingerprint.
            RateLimitExceededError: The device exhausted the like window.
            ChannelNotFoundError: No such channel.
        """
        cid = ChannelId(channel_id).value
        device = Fingerprint(fingerprint)

        await self.rate_limiter.check_like(device.value)

        if not await self._store("like_channel_exists", self.channels.exists(cid), cid):
            raise ChannelNotFoundError(cid)

        async with self._lock_for((cid, device.value)):
            liked = await self._store(
                "like_lookup", self.likes.has_record(cid, device.value), cid
            )
            adjust = self.weight_engine.like_adjustment
            try:
                if liked:
                    total = await self._store(
                        "like_remove",
                        self.likes.remove_like(cid, device.value, self.now(), adjust),
                        cid,
                    )
                    change = -1
                else:
                    total = await self._store(
                        "like_add",
                        self.likes.add_like(cid, device.value, self.now(), adjust),
                        cid,
                    )
                    change = 1
            except ConflictError as e:
                logger.info(
                    "like_toggle_conflict",
                    channel_id=cid,
                    fingerprint=device.mask_for_logging(),
                    code=e.code,
                )
                return await self.status(cid, device.value)

        await self.cache.invalidate_listings()
        logger.info(
            "like_toggled",
            channel_id=cid,
            fingerprint=device.mask_for_logging(),
            liked=change > 0,
            count=total,
        )
        return LikeStatus(liked=change > 0, count=total)

    async def status(self, channel_id: str, fingerprint: str) -> LikeStatus:
        cid = ChannelId(channel_id).value
        device = Fingerprint(fingerprint)
        liked = await self._store("like_status", self.likes.has_record(cid, device.value), cid)
        aggregate = await self._store("like_count", self.likes.get_aggregate(cid), cid)
        return LikeStatus(liked=liked, count=aggregate.total_likes if aggregate else 0)

    async def set_total_likes(self, channel_id: str, total) -> dict:
        """Admin override of a channel's like counter.

        The weight moves by the like-bonus difference between the old and new
        totals, exactly as if that many toggles had happened.
        """
        cid = ChannelId(channel_id).value
        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            raise ValidationError("Total likes must be a non-negative integer")
        if not await self._store("set_likes_exists", self.channels.exists(cid), cid):
            raise ChannelNotFoundError(cid)

        previous, delta = await self._store(
            "set_likes",
            self.likes.set_total(cid, total, self.now(), self.weight_engine.like_adjustment),
            cid,
        )
        await self.cache.invalidate_listings()
        logger.info("likes_overridden", channel_id=cid, before=previous, after=total, delta=delta)
        return {"id": cid, "before": previous, "after": total, "weight_delta": delta}
