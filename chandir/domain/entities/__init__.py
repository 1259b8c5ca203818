from .channel import Channel, WeightDemotion
from .like import LikeAggregate, LikeRecord
from .search_keyword import SearchKeyword

__all__ = ["Channel", "WeightDemotion", "LikeAggregate", "LikeRecord", "SearchKeyword"]
