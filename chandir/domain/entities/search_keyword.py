from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, String
from sqlmodel import Column, Field, SQLModel

from chandir.domain.entities.channel import utcnow

WEB_USER_INPUT = "web_user_input"
PENDING = "pending"
DEFAULT_PRIORITY = 3
SEARCH_INTERVAL_HOURS = 24


class SearchKeyword(SQLModel, table=True):
    """A visitor search term queued for the external crawler.

    New keywords are due immediately (`next_search_at` = now); the crawler then
    revisits them every `SEARCH_INTERVAL_HOURS`.
    """

    __tablename__ = "search_keywords"

    keyword: str = Field(sa_column=Column(String(64), primary_key=True))
    source: str = Field(default=WEB_USER_INPUT, max_length=32)
    status: str = Field(default=PENDING, max_length=16)
    priority: int = Field(default=DEFAULT_PRIORITY)
    interval_hours: int = Field(default=SEARCH_INTERVAL_HOURS)
    total_searches: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    last_search_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    next_search_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )
