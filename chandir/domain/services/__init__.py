from .directory_service import DirectoryService
from .like_ledger import LikeLedger, LikeStatus
from .weight_engine import WeightEngine, like_bonus

__all__ = ["DirectoryService", "LikeLedger", "LikeStatus", "WeightEngine", "like_bonus"]
