from datetime import datetime, timedelta

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from chandir.domain.entities.search_keyword import SEARCH_INTERVAL_HOURS, SearchKeyword
from chandir.domain.interfaces.repositories import ISearchKeywordRepository

logger = get_logger(__name__)


class SearchKeywordRepository(ISearchKeywordRepository):
    """Queues visitor keywords for the crawler."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def record(self, keyword: str, at: datetime) -> bool:
        if await self._bump(keyword, at):
            return False
        try:
            async with self.session_factory.begin() as session:
                session.add(
                    SearchKeyword(
                        keyword=keyword,
                        total_searches=1,
                        last_search_at=at,
                        next_search_at=at,
                        created_at=at,
                        updated_at=at,
                    )
                )
        except IntegrityError:
            # Inserted concurrently by another request.
            await self._bump(keyword, at)
            return False
        logger.info(
            "search_keyword_queued",
            keyword=keyword,
            interval=str(timedelta(hours=SEARCH_INTERVAL_HOURS)),
        )
        return True

    async def _bump(self, keyword: str, at: datetime) -> bool:
        async with self.session_factory.begin() as session:
            result = await session.execute(
                update(SearchKeyword)
                .where(SearchKeyword.keyword == keyword)
                .values(
                    total_searches=SearchKeyword.total_searches + 1,
                    last_search_at=at,
                    updated_at=at,
                )
                .execution_options(synchronize_session=False)
            )
        return result.rowcount > 0
