from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Integer, String, Text
from sqlmodel import Column, Field, SQLModel

from chandir.domain.value_objects.visibility import Visibility


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Channel(SQLModel, table=True):
    """A tracked directory entry, ranked by `weight_value`.

    Channels are created by the ingestion collaborator (or the admin manual add)
    with ``weight_value == base_weight == members`` and are never hard-deleted
    here. Weight columns are mutated only through the WeightEngine and the like
    ledger.

    Attributes:
        id: Lower-cased channel handle, immutable once created.
        weight_value: Current ranking score, never negative.
        base_weight: Score seeded from the member count at creation.
        like_bonus: Portion of `weight_value` contributed by likes.
        demoted: True while single-channel demotions are in effect.
        demote_count: Number of single-channel demotions since last restore.
        original_weight: Score before the first demotion, restored by `restore`.
        demote_reason: Flat note written by language bulk demotion.
        is_active: Crawler-controlled reachability.
        admin_hidden: Operator override hiding the channel from listings.
    """

    __tablename__ = "channels"

    id: str = Field(sa_column=Column(String(64), primary_key=True))
    name: str = Field(default="", sa_column=Column(String(255), nullable=False, default=""))
    description: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    avatar: Optional[str] = Field(default=None, max_length=512)
    is_verified: bool = Field(default=False)

    members: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    likes: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    growth_last_7_days: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    growth_last_30_days: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    growth_rate: float = Field(default=0.0)

    weight_value: int = Field(
        default=0, sa_column=Column(BigInteger, nullable=False, default=0, index=True)
    )
    base_weight: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    growth_bonus: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    abnormal_penalty: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    like_bonus: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    demoted: bool = Field(default=False)
    demote_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    original_weight: Optional[int] = Field(default=None, sa_column=Column(BigInteger, nullable=True))
    demote_reason: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))
    weight_reason: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))
    weight_last_calculated: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    is_active: bool = Field(default=True)
    admin_hidden: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )

    @property
    def visibility(self) -> Visibility:
        return Visibility(active=self.is_active, admin_hidden=self.admin_hidden)

    @classmethod
    def seed(
        cls,
        channel_id: str,
        members: int = 0,
        name: str = "",
        reason: str = "initial ingestion",
        **fields,
    ) -> "Channel":
        """Build a new channel the way the ingestion collaborator does."""
        now = utcnow()
        return cls(
            id=channel_id,
            name=name or channel_id,
            members=members,
            weight_value=members,
            base_weight=members,
            weight_reason=reason,
            weight_last_calculated=now,
            created_at=now,
            updated_at=now,
            **fields,
        )

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "avatar": self.avatar,
            "is_verified": self.is_verified,
            "members": self.members,
            "likes": self.likes,
            "growth_last_7_days": self.growth_last_7_days,
            "growth_rate": self.growth_rate,
            "weight": self.weight_value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def to_admin_dict(self) -> dict:
        data = self.to_public_dict()
        data.update(
            base_weight=self.base_weight,
            growth_bonus=self.growth_bonus,
            abnormal_penalty=self.abnormal_penalty,
            like_bonus=self.like_bonus,
            demoted=self.demoted,
            demote_count=self.demote_count,
            original_weight=self.original_weight,
            demote_reason=self.demote_reason,
            weight_reason=self.weight_reason,
            weight_last_calculated=(
                self.weight_last_calculated.isoformat() if self.weight_last_calculated else None
            ),
            is_active=self.is_active,
            admin_hidden=self.admin_hidden,
            listed=self.visibility.is_listed(),
        )
        return data


class WeightDemotion(SQLModel, table=True):
    """One single-channel demotion. Rows are only inserted, or deleted by restore."""

    __tablename__ = "channel_weight_demotions"

    id: Optional[int] = Field(default=None, primary_key=True)
    channel_id: str = Field(sa_column=Column(String(64), nullable=False, index=True))
    percentage: float = Field(nullable=False)
    before_value: int = Field(sa_column=Column(BigInteger, nullable=False))
    after_value: int = Field(sa_column=Column(BigInteger, nullable=False))
    applied_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )
