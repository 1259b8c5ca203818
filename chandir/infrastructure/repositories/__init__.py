from .channel_repository import ChannelRepository
from .like_repository import LikeRepository
from .search_keyword_repository import SearchKeywordRepository

__all__ = ["ChannelRepository", "LikeRepository", "SearchKeywordRepository"]
