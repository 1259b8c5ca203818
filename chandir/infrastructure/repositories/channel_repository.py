"""Channel repository implementation using SQLAlchemy.

Every public method runs in its own transaction obtained from the injected
`async_sessionmaker`. Counter columns are changed with ``x = x + n`` updates;
weight overwrites read the row ``FOR UPDATE`` inside the same transaction.
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from chandir.domain.entities.channel import Channel, WeightDemotion
from chandir.core.exceptions import ChannelNotFoundError
from chandir.domain.interfaces.repositories import IChannelRepository, LikeAdjustment, WeightFn
from chandir.domain.value_objects.query import PageRequest, SortOrder
from chandir.domain.value_objects.visibility import listed_filter

logger = get_logger(__name__)

_ORDERING = {
    SortOrder.WEIGHT: (Channel.weight_value.desc(), Channel.id.asc()),
    SortOrder.MEMBERS: (Channel.members.desc(), Channel.id.asc()),
    SortOrder.LIKES: (Channel.likes.desc(), Channel.weight_value.desc(), Channel.id.asc()),
    SortOrder.NEWEST: (Channel.created_at.desc(), Channel.id.asc()),
}


def _listed():
    return listed_filter(Channel.is_active, Channel.admin_hidden)


def _keyword_filter(keyword: str):
    return or_(
        Channel.id.icontains(keyword, autoescape=True),
        Channel.name.icontains(keyword, autoescape=True),
        Channel.description.icontains(keyword, autoescape=True),
    )


def _non_negative(expr):
    return case((expr < 0, 0), else_=expr)


async def apply_like_adjustment(
    session: AsyncSession, channel_id: str, adjustment: LikeAdjustment, at: datetime
) -> None:
    """Add a like adjustment to the channel row inside the caller's transaction.

    Every column is clamped at zero, so a like/unlike pair on a channel demoted
    below its like bonus does not return `weight_value` to where it started.

    Raises:
        ChannelNotFoundError: No channel row matched.
    """
    result = await session.execute(
        update(Channel)
        .where(Channel.id == channel_id)
        .values(
            weight_value=_non_negative(Channel.weight_value + adjustment.bonus_delta),
            like_bonus=_non_negative(Channel.like_bonus + adjustment.bonus_delta),
            likes=_non_negative(Channel.likes + adjustment.likes_delta),
            weight_reason=adjustment.reason,
            weight_last_calculated=at,
            updated_at=at,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ChannelNotFoundError(channel_id)


class ChannelRepository(IChannelRepository):
    """SQLAlchemy implementation of `IChannelRepository`."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get(self, channel_id: str) -> Optional[Channel]:
        async with self.session_factory() as session:
            return await session.get(Channel, channel_id)

    async def exists(self, channel_id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(select(Channel.id).where(Channel.id == channel_id))
            return result.scalar_one_or_none() is not None

    async def add_many(self, channels: Sequence[Channel]) -> Tuple[List[str], List[str]]:
        ids = [channel.id for channel in channels]
        async with self.session_factory.begin() as session:
            result = await session.execute(select(Channel.id).where(Channel.id.in_(ids)))
            existing = set(result.scalars().all())
            created = []
            for channel in channels:
                if channel.id in existing:
                    continue
                session.add(channel)
                created.append(channel.id)
        logger.info("channels_added", created=len(created), existing=len(existing))
        return created, [i for i in ids if i in existing]

    async def list_page(
        self,
        page: PageRequest,
        listed_only: bool = True,
        keyword: Optional[str] = None,
    ) -> Tuple[List[Channel], int]:
        conditions = []
        if listed_only:
            conditions.append(_listed())
        if keyword:
            conditions.append(_keyword_filter(keyword))

        statement = (
            select(Channel)
            .where(*conditions)
            .order_by(*_ORDERING[page.sort])
            .offset(page.offset)
            .limit(page.page_size)
        )
        count_statement = select(func.count()).select_from(Channel).where(*conditions)
        async with self.session_factory() as session:
            rows = (await session.execute(statement)).scalars().all()
            total = (await session.execute(count_statement)).scalar_one()
        return list(rows), int(total)

    async def statistics(self, keyword: Optional[str] = None) -> Dict[str, int]:
        listed = _listed()
        conditions = [_keyword_filter(keyword)] if keyword else []
        statement = select(
            func.count(),
            func.coalesce(func.sum(case((listed, 1), else_=0)), 0),
            func.coalesce(func.sum(case((listed, Channel.members), else_=0)), 0),
            func.coalesce(func.sum(case((Channel.admin_hidden.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(case((Channel.is_active.is_(False), 1), else_=0)), 0),
        ).where(*conditions)
        async with self.session_factory() as session:
            row = (await session.execute(statement)).one()
        return {
            "all": int(row[0]),
            "total": int(row[1]),
            "total_members": int(row[2]),
            "hidden": int(row[3]),
            "inactive": int(row[4]),
        }

    async def update_weight(
        self, channel_id: str, compute: WeightFn, reason: str, at: datetime
    ) -> Optional[Tuple[int, int]]:
        async with self.session_factory.begin() as session:
            channel = await session.get(Channel, channel_id, with_for_update=True)
            if channel is None:
                return None
            before = channel.weight_value
            after = compute(before)
            channel.weight_value = after
            channel.weight_reason = reason
            channel.weight_last_calculated = at
            channel.updated_at = at
        return before, after

    async def apply_demotion(
        self, channel_id: str, percentage: float, compute: WeightFn, reason: str, at: datetime
    ) -> Optional[Tuple[int, int]]:
        async with self.session_factory.begin() as session:
            channel = await session.get(Channel, channel_id, with_for_update=True)
            if channel is None:
                return None
            before = channel.weight_value
            after = compute(before)
            await session.execute(
                update(Channel)
                .where(Channel.id == channel_id)
                .values(
                    weight_value=after,
                    original_weight=func.coalesce(Channel.original_weight, before),
                    demote_count=Channel.demote_count + 1,
                    demoted=True,
                    weight_reason=reason,
                    weight_last_calculated=at,
                    updated_at=at,
                )
                .execution_options(synchronize_session=False)
            )
            session.add(
                WeightDemotion(
                    channel_id=channel_id,
                    percentage=percentage,
                    before_value=before,
                    after_value=after,
                    applied_at=at,
                )
            )
        return before, after

    async def restore(
        self, channel_id: str, reason: str, at: datetime
    ) -> Optional[Tuple[int, int, bool]]:
        async with self.session_factory.begin() as session:
            channel = await session.get(Channel, channel_id, with_for_update=True)
            if channel is None:
                return None
            before = channel.weight_value
            if not channel.demoted or channel.original_weight is None:
                return before, before, False
            after = channel.original_weight
            channel.weight_value = after
            channel.demoted = False
            channel.demote_count = 0
            channel.original_weight = None
            channel.weight_reason = reason
            channel.weight_last_calculated = at
            channel.updated_at = at
            await session.execute(
                delete(WeightDemotion).where(WeightDemotion.channel_id == channel_id)
            )
        return before, after, True

    async def demotion_history(self, channel_id: str) -> List[dict]:
        statement = (
            select(WeightDemotion)
            .where(WeightDemotion.channel_id == channel_id)
            .order_by(WeightDemotion.applied_at.asc(), WeightDemotion.id.asc())
        )
        async with self.session_factory() as session:
            rows = (await session.execute(statement)).scalars().all()
        return [
            {
                "percentage": row.percentage,
                "before": row.before_value,
                "after": row.after_value,
                "applied_at": row.applied_at.isoformat(),
            }
            for row in rows
        ]

    async def fetch_chunk(
        self, after_id: Optional[str], limit: int
    ) -> List[Tuple[str, str, int, int]]:
        statement = select(Channel.id, Channel.name, Channel.weight_value, Channel.members)
        if after_id is not None:
            statement = statement.where(Channel.id > after_id)
        statement = statement.order_by(Channel.id.asc()).limit(limit)
        async with self.session_factory() as session:
            rows = (await session.execute(statement)).all()
        return [(row[0], row[1], int(row[2]), int(row[3])) for row in rows]

    async def demote_ids_by_percent(
        self, channel_ids: Sequence[str], percent: int, reason: str, at: datetime
    ) -> int:
        if not channel_ids:
            return 0
        async with self.session_factory.begin() as session:
            result = await session.execute(
                update(Channel)
                .where(Channel.id.in_(list(channel_ids)))
                .values(
                    weight_value=(Channel.weight_value * (100 - percent)) // 100,
                    demote_reason=reason,
                    weight_reason=reason,
                    weight_last_calculated=at,
                    updated_at=at,
                )
                .execution_options(synchronize_session=False)
            )
        return result.rowcount

    async def set_admin_hidden(self, channel_id: str, hidden: bool, at: datetime) -> bool:
        async with self.session_factory.begin() as session:
            result = await session.execute(
                update(Channel)
                .where(Channel.id == channel_id)
                .values(admin_hidden=hidden, updated_at=at)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount > 0
