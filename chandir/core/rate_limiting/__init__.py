"""Rate limiting core: fixed-window counters keyed by scope and subject."""

from .limiter import RateLimiter, RateLimitResult
from .policies import RateLimitPolicy, build_policies, policies_from_settings

__all__ = [
    "RateLimiter",
    "RateLimitResult",
    "RateLimitPolicy",
    "build_policies",
    "policies_from_settings",
]
