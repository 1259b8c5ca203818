from .repositories import IChannelRepository, ILikeRepository, ISearchKeywordRepository

__all__ = ["IChannelRepository", "ILikeRepository", "ISearchKeywordRepository"]
