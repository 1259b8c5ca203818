"""Directory service: the composition point consumed by the HTTP layer.

Reads pass the rate limiter, then the cache tier, then the repositories.
Mutations go through the WeightEngine or LikeLedger and invalidate listing
caches once they succeed.
"""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from structlog import get_logger

from chandir.core.exceptions import ChannelNotFoundError, DirectoryError, ValidationError
from chandir.core.rate_limiting import RateLimiter
from chandir.core.responses import BatchResult, OperationStatus, WeightChange
from chandir.core.store import run_store_operation
from chandir.domain.entities.channel import Channel
from chandir.domain.interfaces.repositories import IChannelRepository, ISearchKeywordRepository
from chandir.domain.services.like_ledger import LikeLedger, LikeStatus
from chandir.domain.services.weight_engine import WeightEngine
from chandir.domain.value_objects.identifiers import ChannelId, Fingerprint, parse_channel_usernames
from chandir.domain.value_objects.query import PageRequest, sanitize_keyword
from chandir.infrastructure.cache import CacheTier

logger = get_logger(__name__)

MAX_BATCH_SIZE = 500
REASON_MANUAL_ADD = "manual add"


def _page_payload(channels: List[Channel], total: int, page: PageRequest, stats: Dict) -> Dict:
    return {
        "channels": [channel.to_public_dict() for channel in channels],
        "stats": {"total": stats["total"], "total_members": stats["total_members"]},
        "pagination": {
            "page": page.page,
            "page_size": page.page_size,
            "total": total,
            "has_more": page.offset + len(channels) < total,
        },
    }


class DirectoryService:
    def __init__(
        self,
        channels: IChannelRepository,
        keywords: ISearchKeywordRepository,
        weight_engine: WeightEngine,
        like_ledger: LikeLedger,
        cache: CacheTier,
        rate_limiter: RateLimiter,
        timeout: float = 5.0,
        generic_errors: bool = False,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.channels = channels
        self.keywords = keywords
        self.weight_engine = weight_engine
        self.like_ledger = like_ledger
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.generic_errors = generic_errors
        self.now = now

    async def _store(self, operation: str, awaitable, subject: Optional[str] = None):
        return await run_store_operation(
            operation,
            awaitable,
            timeout=self.timeout,
            subject=subject,
            generic_messages=self.generic_errors,
        )

    # ------------------------------------------------------------------
    # Public reads
    # ------------------------------------------------------------------

    async def list_channels(
        self, page: int = 1, page_size: int = 20, sort: str = "weight", client_ip: Optional[str] = None
    ) -> Dict:
        request = PageRequest(page=page, page_size=page_size, sort=sort)
        if client_ip:
            await self.rate_limiter.check_page_ip(client_ip)

        key = self.cache.listing_key(request.sort.value, request.page, request.page_size)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        generation = self.cache.generation
        rows, total = await self._store("list_channels", self.channels.list_page(request))
        stats = await self._store("listing_statistics", self.channels.statistics())
        payload = _page_payload(rows, total, request, stats)
        await self.cache.put(key, payload, generation=generation)
        return payload

    async def search_channels(
        self,
        keyword: str,
        page: int = 1,
        page_size: int = 20,
        sort: str = "weight",
        fingerprint: Optional[str] = None,
        client_ip: Optional[str] = None,
    ) -> Dict:
        """Search listed channels by id, name or description.

        An empty keyword after sanitisation falls back to the plain listing.
        """
        request = PageRequest(page=page, page_size=page_size, sort=sort)
        device = Fingerprint(fingerprint) if fingerprint else None
        if client_ip:
            await self.rate_limiter.check_page_ip(client_ip)
        if device is not None:
            await self.rate_limiter.check_search(device.value)

        term = sanitize_keyword(keyword)
        if not term:
            return await self.list_channels(request.page, request.page_size, request.sort.value)

        key = self.cache.search_key(term, request.page, request.page_size, request.sort.value)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        generation = self.cache.generation
        rows, total = await self._store(
            "search_channels", self.channels.list_page(request, keyword=term)
        )
        stats = await self._store("search_statistics", self.channels.statistics())
        payload = _page_payload(rows, total, request, stats)
        payload["keyword"] = term
        await self.cache.put(key, payload, generation=generation)
        return payload

    async def get_channel(self, channel_id: str, client_ip: Optional[str] = None) -> Dict:
        """Share-page lookup. Hidden or unreachable channels are reported as missing."""
        cid = ChannelId(channel_id).value
        if client_ip:
            await self.rate_limiter.check_page_ip(client_ip)
        channel = await self._store("get_channel", self.channels.get(cid), cid)
        if channel is None or not channel.visibility.is_listed():
            raise ChannelNotFoundError(cid)
        return channel.to_public_dict()

    async def toggle_like(self, channel_id: str, fingerprint: str) -> LikeStatus:
        return await self.like_ledger.toggle(channel_id, fingerprint)

    async def like_status(self, channel_id: str, fingerprint: str) -> LikeStatus:
        return await self.like_ledger.status(channel_id, fingerprint)

    async def record_search_keyword(self, keyword: str, fingerprint: Optional[str] = None) -> Dict:
        if fingerprint:
            await self.rate_limiter.check_search(Fingerprint(fingerprint).value)
        term = sanitize_keyword(keyword).lower()
        if not term:
            raise ValidationError("Keyword cannot be empty")
        is_new = await self._store("record_search_keyword", self.keywords.record(term, self.now()))
        return {"keyword": term, "is_new": is_new}

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    async def check_admin_rate(self, subject: str) -> None:
        await self.rate_limiter.check_admin(subject)

    async def admin_list(
        self,
        page: int = 1,
        page_size: int = 20,
        sort: str = "weight",
        show_hidden: bool = True,
        keyword: Optional[str] = None,
    ) -> Dict:
        request = PageRequest(page=page, page_size=page_size, sort=sort)
        term = sanitize_keyword(keyword) if keyword else None
        rows, total = await self._store(
            "admin_list",
            self.channels.list_page(request, listed_only=not show_hidden, keyword=term or None),
        )
        stats = await self._store("admin_statistics", self.channels.statistics(term or None))
        return {
            "channels": [channel.to_admin_dict() for channel in rows],
            "stats": stats,
            "pagination": {
                "page": request.page,
                "page_size": request.page_size,
                "total": total,
                "has_more": request.offset + len(rows) < total,
            },
        }

    async def channel_detail(self, channel_id: str) -> Dict:
        cid = ChannelId(channel_id).value
        channel = await self._store("channel_detail", self.channels.get(cid), cid)
        if channel is None:
            raise ChannelNotFoundError(cid)
        data = channel.to_admin_dict()
        data["demotion_history"] = await self._store(
            "demotion_history", self.channels.demotion_history(cid), cid
        )
        return data

    async def _mutate(self, change: Awaitable[WeightChange]) -> WeightChange:
        result = await change
        if result.status is OperationStatus.SUCCESS:
            await self.cache.invalidate_listings()
        return result

    async def set_weight(self, channel_id: str, value) -> WeightChange:
        return await self._mutate(self.weight_engine.set_weight(channel_id, value))

    async def demote(self, channel_id: str, percentage) -> WeightChange:
        return await self._mutate(self.weight_engine.demote(channel_id, percentage))

    async def promote(self, channel_id: str, amount, mode: str = "percentage") -> WeightChange:
        return await self._mutate(self.weight_engine.promote(channel_id, amount, mode))

    async def restore(self, channel_id: str) -> WeightChange:
        return await self._mutate(self.weight_engine.restore(channel_id))

    async def _batch(
        self, channel_ids: Iterable[str], apply: Callable[[str], Awaitable[WeightChange]]
    ) -> BatchResult:
        ids = list(dict.fromkeys(channel_ids or []))
        if not ids:
            raise ValidationError("At least one channel id is required")
        if len(ids) > MAX_BATCH_SIZE:
            raise ValidationError(f"At most {MAX_BATCH_SIZE} channels per batch")

        result = BatchResult()
        for channel_id in ids:
            try:
                change = await apply(channel_id)
            except DirectoryError as e:
                result.add_failure(str(channel_id), e.message)
                continue
            if change.status is OperationStatus.SKIPPED:
                result.add_skipped(change.channel_id, change.reason)
            else:
                result.add_success(change.to_dict())

        if result.has_changes:
            await self.cache.invalidate_listings()
        logger.info(
            "batch_finished",
            succeeded=len(result.success),
            failed=len(result.failed),
            skipped=len(result.skipped),
        )
        return result

    async def batch_demote(self, channel_ids: Iterable[str], percentage) -> BatchResult:
        return await self._batch(
            channel_ids, lambda cid: self.weight_engine.demote(cid, percentage)
        )

    async def batch_promote(
        self, channel_ids: Iterable[str], amount, mode: str = "percentage"
    ) -> BatchResult:
        return await self._batch(
            channel_ids, lambda cid: self.weight_engine.promote(cid, amount, mode)
        )

    async def batch_restore(self, channel_ids: Iterable[str]) -> BatchResult:
        return await self._batch(channel_ids, self.weight_engine.restore)

    async def batch_demote_by_language(self, language_code: str, demote_percent) -> Dict:
        summary = await self.weight_engine.batch_by_language(language_code, demote_percent)
        if summary["updated"]:
            await self.cache.invalidate_listings()
        return summary

    async def language_statistics(self) -> Dict[str, Any]:
        return {"languages": await self.weight_engine.language_statistics()}

    async def set_likes(self, channel_id: str, total) -> Dict:
        return await self.like_ledger.set_total_likes(channel_id, total)

    async def toggle_visibility(self, channel_id: str) -> Dict:
        cid = ChannelId(channel_id).value
        channel = await self._store("toggle_visibility_lookup", self.channels.get(cid), cid)
        if channel is None:
            raise ChannelNotFoundError(cid)
        visibility = channel.visibility.toggled_hidden()
        await self._store(
            "toggle_visibility",
            self.channels.set_admin_hidden(cid, visibility.admin_hidden, self.now()),
            cid,
        )
        await self.cache.invalidate_listings()
        logger.info("channel_visibility_toggled", channel_id=cid, admin_hidden=visibility.admin_hidden)
        return {
            "id": cid,
            "admin_hidden": visibility.admin_hidden,
            "listed": visibility.is_listed(),
        }

    async def add_channels(self, raw: str) -> Dict:
        """Manual add of one or more channels from free-form operator input."""
        usernames, invalid = parse_channel_usernames(raw)
        if not usernames:
            raise ValidationError("No valid channel usernames found")
        if len(usernames) > MAX_BATCH_SIZE:
            raise ValidationError(f"At most {MAX_BATCH_SIZE} channels per request")

        seeds = [Channel.seed(username, reason=REASON_MANUAL_ADD) for username in usernames]
        created, existing = await self._store("add_channels", self.channels.add_many(seeds))
        if created:
            await self.cache.invalidate_listings()
        return {"created": created, "existing": existing, "invalid": invalid}
