"""Repository interfaces for abstracting data persistence in the domain layer.

The domain services depend only on these ports. The SQLAlchemy adapters in
`chandir.infrastructure.repositories` implement them; tests may substitute
in-memory doubles.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from chandir.domain.entities.channel import Channel
from chandir.domain.entities.like import LikeAggregate
from chandir.domain.value_objects.query import PageRequest

WeightFn = Callable[[int], int]


@dataclass(frozen=True)
class LikeAdjustment:
    """Additive change to a channel's like-derived columns."""

    bonus_delta: int
    likes_delta: int
    reason: str


# ``(total_likes_after, change) -> LikeAdjustment``, evaluated inside the like
# repository's transaction.
LikeAdjustmentFn = Callable[[int, int], LikeAdjustment]


class IChannelRepository(ABC):
    """Persistence contract for channels and their weight state."""

    @abstractmethod
    async def get(self, channel_id: str) -> Optional[Channel]:
        raise NotImplementedError

    @abstractmethod
    async def exists(self, channel_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def add_many(self, channels: Sequence[Channel]) -> Tuple[List[str], List[str]]:
        """Insert channels, skipping ids that already exist.

        Returns:
            ``(created_ids, existing_ids)``
        """
        raise NotImplementedError

    @abstractmethod
    async def list_page(
        self,
        page: PageRequest,
        listed_only: bool = True,
        keyword: Optional[str] = None,
    ) -> Tuple[List[Channel], int]:
        """Return one page of channels and the total matching count."""
        raise NotImplementedError

    @abstractmethod
    async def statistics(self, keyword: Optional[str] = None) -> Dict[str, int]:
        """Aggregate counts over the listed set (and hidden/inactive counts)."""
        raise NotImplementedError

    @abstractmethod
    async def update_weight(
        self, channel_id: str, compute: WeightFn, reason: str, at: datetime
    ) -> Optional[Tuple[int, int]]:
        """Set `weight_value` to ``compute(current)``.

        Returns:
            ``(before, after)``, or None if the channel does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    async def apply_demotion(
        self, channel_id: str, percentage: float, compute: WeightFn, reason: str, at: datetime
    ) -> Optional[Tuple[int, int]]:
        """Demote one channel, snapshotting the original weight and appending history."""
        raise NotImplementedError

    @abstractmethod
    async def restore(self, channel_id: str, reason: str, at: datetime) -> Optional[Tuple[int, int, bool]]:
        """Restore `original_weight` and clear history in one transaction.

        Returns ``(before, after, was_demoted)`` or None if the channel is missing.
        """
        raise NotImplementedError

    @abstractmethod
    async def demotion_history(self, channel_id: str) -> List[dict]:
        raise NotImplementedError

    @abstractmethod
    async def fetch_chunk(
        self, after_id: Optional[str], limit: int
    ) -> List[Tuple[str, str, int, int]]:
        """Return up to `limit` ``(id, name, weight_value, members)`` rows with ``id > after_id``.

        Rows are ordered by id so callers can page with the last id seen.
        """
        raise NotImplementedError

    @abstractmethod
    async def demote_ids_by_percent(
        self, channel_ids: Sequence[str], percent: int, reason: str, at: datetime
    ) -> int:
        """Apply ``weight = weight * (100 - p) // 100`` to the given ids. Returns rows updated."""
        raise NotImplementedError

    @abstractmethod
    async def set_admin_hidden(self, channel_id: str, hidden: bool, at: datetime) -> bool:
        raise NotImplementedError


class ILikeRepository(ABC):
    """Persistence contract for like records and aggregates."""

    @abstractmethod
    async def has_record(self, channel_id: str, fingerprint: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def get_aggregate(self, channel_id: str) -> Optional[LikeAggregate]:
        raise NotImplementedError

    @abstractmethod
    async def add_like(
        self, channel_id: str, fingerprint: str, at: datetime, adjust: LikeAdjustmentFn
    ) -> int:
        """Insert the record, increment counters and apply ``adjust`` to the channel.

        All three writes share one transaction.

        Returns:
            The new `total_likes`.

        Raises:
            ConflictError: The record already exists.
            ChannelNotFoundError: The channel row is gone.
        """
        raise NotImplementedError

    @abstractmethod
    async def remove_like(
        self, channel_id: str, fingerprint: str, at: datetime, adjust: LikeAdjustmentFn
    ) -> int:
        """Delete the record, decrement counters and apply ``adjust`` in one transaction.

        Raises:
            ConflictError: No record was deleted.
        """
        raise NotImplementedError

    @abstractmethod
    async def set_total(
        self, channel_id: str, total: int, at: datetime, adjust: LikeAdjustmentFn
    ) -> Tuple[int, int]:
        """Overwrite `total_likes` and apply ``adjust`` in one transaction.

        Returns:
            ``(previous_total, bonus_delta)``
        """
        raise NotImplementedError


class ISearchKeywordRepository(ABC):
    @abstractmethod
    async def record(self, keyword: str, at: datetime) -> bool:
        """Queue a new keyword or bump an existing one. Returns True when new."""
        raise NotImplementedError
