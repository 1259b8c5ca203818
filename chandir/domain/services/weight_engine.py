"""Weight engine: the single source of truth for channel score arithmetic.

All math is done on exact rationals and floored, so results never depend on
binary float rounding and scores never go negative.

Weight mutations are last-writer-wins on `weight_value`. Demotion history rows
are appended, never rewritten, and `demote_count` is incremented in SQL.
"""

import math
from datetime import datetime, timezone
from fractions import Fraction
from numbers import Real
from typing import Callable, Dict, List, Optional

from structlog import get_logger

from chandir.core.exceptions import ChannelNotFoundError, ServiceUnavailableError, ValidationError
from chandir.core.responses import OperationStatus, WeightChange
from chandir.core.store import run_store_operation
from chandir.domain.interfaces.repositories import IChannelRepository, LikeAdjustment
from chandir.domain.value_objects.identifiers import ChannelId
from chandir.domain.value_objects.language import LanguageTag, classify_language, parse_language_tag

logger = get_logger(__name__)

LIKE_BONUS_PER_LIKE = 100
LIKE_BONUS_CAP = 5_000_000
MAX_PROMOTE_PERCENT = 1000
LANGUAGE_CHUNK_SIZE = 1000

REASON_ADMIN_OVERRIDE = "admin override"
REASON_RESTORED = "restored to original weight"
REASON_LIKE_BONUS = "like bonus"

PROMOTE_PERCENTAGE = "percentage"
PROMOTE_FIXED = "fixed"


def _exact(value: Real) -> Fraction:
    # str() keeps the decimal the caller wrote: 33.3 means 333/10.
    if isinstance(value, float):
        return Fraction(str(value))
    return Fraction(value)


def _number(value, field: str) -> Real:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError(f"{field} must be finite")
    return value


def demoted_value(current: int, percentage: Real) -> int:
    return math.floor(current * (100 - _exact(percentage)) / 100)


def promoted_value(current: int, amount: Real, mode: str) -> int:
    if mode == PROMOTE_PERCENTAGE:
        return math.floor(current * (100 + _exact(amount)) / 100)
    return math.floor(current + _exact(amount))


def like_bonus(total_likes: int) -> int:
    return min(max(total_likes, 0) * LIKE_BONUS_PER_LIKE, LIKE_BONUS_CAP)


class WeightEngine:
    """Computes and mutates channel weights.

    Args:
        channels: Channel repository port.
        timeout: Deadline in seconds for each repository call.
        generic_errors: Hide store error details from raised messages.
        now: UTC clock, injectable for tests.
    """

    def __init__(
        self,
        channels: IChannelRepository,
        timeout: float = 5.0,
        generic_errors: bool = False,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.channels = channels
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

    async def set_weight(self, channel_id: str, new_value) -> WeightChange:
        """Admin override of `weight_value`. Floats are floored; demotion state is kept."""
        cid = ChannelId(channel_id).value
        value = _number(new_value, "Weight")
        if value < 0:
            raise ValidationError("Weight cannot be negative")
        target = math.floor(_exact(value))

        result = await self._store(
            "set_weight",
            self.channels.update_weight(cid, lambda _: target, REASON_ADMIN_OVERRIDE, self.now()),
            cid,
        )
        if result is None:
            raise ChannelNotFoundError(cid)
        before, after = result
        logger.info("weight_set", channel_id=cid, before=before, after=after)
        return WeightChange(cid, OperationStatus.SUCCESS, before, after, REASON_ADMIN_OVERRIDE)

    async def demote(self, channel_id: str, percentage) -> WeightChange:
        """Demote by `percentage` in (0, 100], compounding from the current weight.

        The first demotion snapshots `original_weight`; later ones keep it.
        """
        cid = ChannelId(channel_id).value
        pct = _number(percentage, "Percentage")
        if not 0 < pct <= 100:
            raise ValidationError("Demotion percentage must be greater than 0 and at most 100")
        reason = f"demoted {pct}%"

        result = await self._store(
            "demote",
            self.channels.apply_demotion(
                cid, float(pct), lambda current: demoted_value(current, pct), reason, self.now()
            ),
            cid,
        )
        if result is None:
            raise ChannelNotFoundError(cid)
        before, after = result
        logger.info("channel_demoted", channel_id=cid, percentage=pct, before=before, after=after)
        return WeightChange(cid, OperationStatus.SUCCESS, before, after, reason)

    async def restore(self, channel_id: str) -> WeightChange:
        """Undo all single-channel demotions. A channel that is not demoted is skipped."""
        cid = ChannelId(channel_id).value
        result = await self._store(
            "restore", self.channels.restore(cid, REASON_RESTORED, self.now()), cid
        )
        if result is None:
            raise ChannelNotFoundError(cid)
        before, after, was_demoted = result
        if not was_demoted:
            return WeightChange(cid, OperationStatus.SKIPPED, before, before, "not demoted")
        logger.info("channel_restored", channel_id=cid, before=before, after=after)
        return WeightChange(cid, OperationStatus.SUCCESS, before, after, REASON_RESTORED)

    async def promote(self, channel_id: str, amount, mode: str = PROMOTE_PERCENTAGE) -> WeightChange:
        cid = ChannelId(channel_id).value
        if mode not in (PROMOTE_PERCENTAGE, PROMOTE_FIXED):
            raise ValidationError("Promotion mode must be 'percentage' or 'fixed'")
        value = _number(amount, "Amount")
        if value <= 0:
            raise ValidationError("Promotion amount must be greater than 0")
        if mode == PROMOTE_PERCENTAGE:
            value = min(value, MAX_PROMOTE_PERCENT)
            reason = f"promoted {value}%"
        else:
            reason = f"promoted +{value}"

        result = await self._store(
            "promote",
            self.channels.update_weight(
                cid, lambda current: promoted_value(current, value, mode), reason, self.now()
            ),
            cid,
        )
        if result is None:
            raise ChannelNotFoundError(cid)
        before, after = result
        logger.info("channel_promoted", channel_id=cid, mode=mode, before=before, after=after)
        return WeightChange(cid, OperationStatus.SUCCESS, before, after, reason)

    def like_adjustment(self, total_likes: int, change: int) -> LikeAdjustment:
        """Bonus difference between ``total_likes - change`` and `total_likes` likes.

        The like repository applies the result additively to `weight_value`,
        `like_bonus` and `likes` in the same transaction as the like record.
        """
        delta = like_bonus(total_likes) - like_bonus(total_likes - change)
        logger.debug("like_adjustment_computed", delta=delta, total=total_likes, change=change)
        return LikeAdjustment(bonus_delta=delta, likes_delta=change, reason=REASON_LIKE_BONUS)

    async def batch_by_language(self, language_code: str, demote_percent) -> Dict:
        """Demote every channel whose name classifies as `language_code`.

        Runs in keyset chunks, each its own transaction. A failing chunk is
        reported and the scan continues; nothing is rolled back globally. No
        history row is written and `demote_count`/`original_weight` are left
        alone, so `restore` does not undo this.
        """
        try:
            tag = parse_language_tag(language_code)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if isinstance(demote_percent, bool) or not isinstance(demote_percent, int):
            raise ValidationError("Language demotion percentage must be an integer")
        if not 0 < demote_percent <= 100:
            raise ValidationError("Demotion percentage must be greater than 0 and at most 100")

        reason = f"language demotion {tag.value} {demote_percent}%"
        summary = {
            "language": tag.value,
            "percent": demote_percent,
            "scanned": 0,
            "matched": 0,
            "updated": 0,
            "chunks": 0,
            "failed_chunks": [],
            "completed": True,
        }
        after_id = None
        while True:
            try:
                rows = await self._store(
                    "language_scan", self.channels.fetch_chunk(after_id, LANGUAGE_CHUNK_SIZE)
                )
            except ServiceUnavailableError as e:
                logger.error("language_scan_aborted", after_id=after_id, error=e.message)
                summary["failed_chunks"].append({"after_id": after_id, "error": e.message})
                summary["completed"] = False
                break
            if not rows:
                break

            summary["chunks"] += 1
            summary["scanned"] += len(rows)
            chunk_start = after_id
            after_id = rows[-1][0]
            ids = [row[0] for row in rows if classify_language(row[1]) == tag]
            summary["matched"] += len(ids)
            if ids:
                try:
                    summary["updated"] += await self._store(
                        "language_demote",
                        self.channels.demote_ids_by_percent(
                            ids, demote_percent, reason, self.now()
                        ),
                    )
                except ServiceUnavailableError as e:
                    logger.error(
                        "language_chunk_failed", after_id=chunk_start, size=len(ids), error=e.message
                    )
                    summary["failed_chunks"].append(
                        {"after_id": chunk_start, "count": len(ids), "error": e.message}
                    )
            if len(rows) < LANGUAGE_CHUNK_SIZE:
                break

        logger.info(
            "language_demotion_finished",
            language=tag.value,
            percent=demote_percent,
            matched=summary["matched"],
            updated=summary["updated"],
            failed_chunks=len(summary["failed_chunks"]),
        )
        return summary

    async def language_statistics(self) -> List[Dict]:
        """Per-language channel count, total weight and total members."""
        stats: Dict[LanguageTag, Dict] = {}
        after_id = None
        while True:
            rows = await self._store(
                "language_statistics", self.channels.fetch_chunk(after_id, LANGUAGE_CHUNK_SIZE)
            )
            for channel_id, name, weight, members in rows:
                tag = classify_language(name)
                entry = stats.setdefault(
                    tag, {"code": tag.value, "count": 0, "total_weight": 0, "total_members": 0}
                )
                entry["count"] += 1
                entry["total_weight"] += weight
                entry["total_members"] += members
            if len(rows) < LANGUAGE_CHUNK_SIZE:
                break
            after_id = rows[-1][0]
        return sorted(stats.values(), key=lambda entry: (-entry["count"], entry["code"]))
