"""Like ledger repository implementation using SQLAlchemy.

The like record's composite primary key is the cross-process guard against
double likes: a duplicate insert or a zero-row delete surfaces as
`ConflictError`. The record, the aggregate counters and the channel's
like-derived weight columns are written in one transaction, so any failure
rolls all three back together.
"""

from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import case, delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from chandir.core.exceptions import ConflictError
from chandir.domain.entities.like import LikeAggregate, LikeRecord
from chandir.domain.interfaces.repositories import ILikeRepository, LikeAdjustmentFn

from .channel_repository import apply_like_adjustment

logger = get_logger(__name__)

_aggregate = LikeAggregate.__table__


def _upsert(session: AsyncSession):
    """Dialect-specific INSERT supporting ON CONFLICT."""
    if session.bind.dialect.name == "sqlite":
        return sqlite.insert(_aggregate)
    return postgresql.insert(_aggregate)


class LikeRepository(ILikeRepository):
    """SQLAlchemy implementation of `ILikeRepository`."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def has_record(self, channel_id: str, fingerprint: str) -> bool:
        async with self.session_factory() as session:
            record = await session.get(LikeRecord, (channel_id, fingerprint))
            return record is not None

    async def get_aggregate(self, channel_id: str) -> Optional[LikeAggregate]:
        async with self.session_factory() as session:
            return await session.get(LikeAggregate, channel_id)

    async def add_like(
        self, channel_id: str, fingerprint: str, at: datetime, adjust: LikeAdjustmentFn
    ) -> int:
        async with self.session_factory.begin() as session:
            session.add(LikeRecord(channel_id=channel_id, fingerprint=fingerprint, liked_at=at))
            try:
                await session.flush()
            except IntegrityError as e:
                raise ConflictError(
                    f"Like already recorded for channel '{channel_id}'", code="duplicate_like"
                ) from e

            insert = _upsert(session).values(
                channel_id=channel_id,
                total_likes=1,
                unique_devices=1,
                last_like_at=at,
                created_at=at,
                updated_at=at,
            )
            statement = insert.on_conflict_do_update(
                index_elements=[_aggregate.c.channel_id],
                set_={
                    "total_likes": _aggregate.c.total_likes + 1,
                    "unique_devices": _aggregate.c.unique_devices + 1,
                    "last_like_at": at,
                    "updated_at": at,
                },
            ).returning(_aggregate.c.total_likes)
            total = int((await session.execute(statement)).scalar_one())
            await apply_like_adjustment(session, channel_id, adjust(total, 1), at)
        return total

    async def remove_like(
        self, channel_id: str, fingerprint: str, at: datetime, adjust: LikeAdjustmentFn
    ) -> int:
        async with self.session_factory.begin() as session:
            result = await session.execute(
                delete(LikeRecord).where(
                    LikeRecord.channel_id == channel_id,
                    LikeRecord.fingerprint == fingerprint,
                )
            )
            if result.rowcount == 0:
                raise ConflictError(
                    f"No like recorded for channel '{channel_id}'", code="missing_like"
                )
            total = (
                await session.execute(
                    update(LikeAggregate)
                    .where(LikeAggregate.channel_id == channel_id)
                    .values(
                        total_likes=case(
                            (LikeAggregate.total_likes > 0, LikeAggregate.total_likes - 1),
                            else_=0,
                        ),
                        unique_devices=case(
                            (LikeAggregate.unique_devices > 0, LikeAggregate.unique_devices - 1),
                            else_=0,
                        ),
                        updated_at=at,
                    )
                    .returning(LikeAggregate.total_likes)
                    .execution_options(synchronize_session=False)
                )
            ).scalar_one_or_none()
            if total is None:
                logger.warning("like_aggregate_missing_on_remove", channel_id=channel_id)
                total = 0
            total = int(total)
            await apply_like_adjustment(session, channel_id, adjust(total, -1), at)
        return total

    async def set_total(
        self, channel_id: str, total: int, at: datetime, adjust: LikeAdjustmentFn
    ) -> Tuple[int, int]:
        async with self.session_factory.begin() as session:
            previous = (
                await session.execute(
                    select(LikeAggregate.total_likes)
                    .where(LikeAggregate.channel_id == channel_id)
                    .with_for_update()
                )
            ).scalar_one_or_none()
            previous = int(previous or 0)
            statement = _upsert(session).values(
                channel_id=channel_id,
                total_likes=total,
                unique_devices=0,
                created_at=at,
                updated_at=at,
            )
            await session.execute(
                statement.on_conflict_do_update(
                    index_elements=[_aggregate.c.channel_id],
                    set_={"total_likes": total, "updated_at": at},
                )
            )
            adjustment = adjust(total, total - previous)
            await apply_like_adjustment(session, channel_id, adjustment, at)
        return previous, adjustment.bonus_delta
