from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, String
from sqlmodel import Column, Field, SQLModel

from chandir.domain.entities.channel import utcnow


class LikeAggregate(SQLModel, table=True):
    """Per-channel like counter.

    `total_likes` always equals the number of `LikeRecord` rows for the channel
    once an operation completes. Counters are only changed with atomic
    ``x = x + n`` updates.
    """

    __tablename__ = "channel_likes"

    channel_id: str = Field(sa_column=Column(String(64), primary_key=True))
    total_likes: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    unique_devices: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    last_like_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class LikeRecord(SQLModel, table=True):
    """Presence of a row means this device likes this channel."""

    __tablename__ = "channel_like_records"

    channel_id: str = Field(sa_column=Column(String(64), primary_key=True))
    fingerprint: str = Field(sa_column=Column(String(128), primary_key=True))
    liked_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )
