"""Named rate-limit policies.

Each scope (like, search, admin, per-IP traffic) owns an independent fixed
window. Limits come from ``count/period`` settings strings.
"""

from dataclasses import dataclass
from typing import Dict

from chandir.core.config.redis import parse_rate_limit


@dataclass(frozen=True)
class RateLimitPolicy:
    """A fixed-window limit for one scope.

    Attributes:
        scope: Key namespace, the ``<scope>`` in ``rate:<scope>:<subject>``.
        max_requests: Requests admitted per window.
        window_seconds: Window length.
    """

    scope: str
    max_requests: int
    window_seconds: int

    def __post_init__(self) -> None:
        if not self.scope:
            raise ValueError("Rate limit scope cannot be empty")
        if self.max_requests <= 0:
            raise ValueError("Max requests must be positive")
        if self.window_seconds <= 0:
            raise ValueError("Rate limit window must be positive")

    @classmethod
    def from_string(cls, scope: str, value: str) -> "RateLimitPolicy":
        max_requests, window_seconds = parse_rate_limit(value)
        return cls(scope=scope, max_requests=max_requests, window_seconds=window_seconds)


LIKE = "like"
SEARCH = "search"
ADMIN = "admin"
GLOBAL_IP = "ip_global"
PAGE_IP = "ip_page"
API_IP = "ip_api"


def build_policies(
    like: str = "20/minute",
    search: str = "30/minute",
    admin: str = "50/minute",
    global_ip: str = "60/minute",
    page_ip: str = "10/minute",
    api_ip: str = "10000/hour",
) -> Dict[str, RateLimitPolicy]:
    """Build the policy table keyed by scope name."""
    return {
        LIKE: RateLimitPolicy.from_string(LIKE, like),
        SEARCH: RateLimitPolicy.from_string(SEARCH, search),
        ADMIN: RateLimitPolicy.from_string(ADMIN, admin),
        GLOBAL_IP: RateLimitPolicy.from_string(GLOBAL_IP, global_ip),
        PAGE_IP: RateLimitPolicy.from_string(PAGE_IP, page_ip),
        API_IP: RateLimitPolicy.from_string(API_IP, api_ip),
    }


def policies_from_settings(settings) -> Dict[str, RateLimitPolicy]:
    return build_policies(
        like=settings.RATE_LIMIT_LIKE,
        search=settings.RATE_LIMIT_SEARCH,
        admin=settings.RATE_LIMIT_ADMIN,
        global_ip=settings.RATE_LIMIT_GLOBAL_IP,
        page_ip=settings.RATE_LIMIT_PAGE_IP,
        api_ip=settings.RATE_LIMIT_API_IP,
    )
