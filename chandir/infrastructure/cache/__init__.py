from .cache_tier import CacheTier

__all__ = ["CacheTier"]
