"""
Two-tier cache settings.
"""
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class CacheSettings(BaseSettings):
    """
    Defines TTLs and sizing for the listing/search cache.

    The process-local tier is a short-lived accelerator in front of Redis, so
    its TTL must stay below both distributed TTLs.
    """
    CACHE_KEY_PREFIX: str = "nav"
    CACHE_LOCAL_TTL_SECONDS: float = Field(gt=0, default=30)
    CACHE_LOCAL_MAXSIZE: int = Field(ge=1, default=2048)
    CACHE_LISTING_TTL_SECONDS: int = Field(ge=1, default=300)
    CACHE_SEARCH_TTL_SECONDS: int = Field(ge=1, default=600)
    CACHE_TIMEOUT_SECONDS: float = Field(gt=0, default=0.5)
    CACHE_BREAKER_FAILURE_THRESHOLD: int = Field(ge=1, default=5)
    CACHE_BREAKER_RESET_SECONDS: int = Field(ge=1, default=30)

    @model_validator(mode="after")
    def validate_tier_ttls(self):
        shortest_remote = min(self.CACHE_LISTING_TTL_SECONDS, self.CACHE_SEARCH_TTL_SECONDS)
        if self.CACHE_LOCAL_TTL_SECONDS >= shortest_remote:
            raise ValueError(
                "CACHE_LOCAL_TTL_SECONDS must be shorter than the listing and search TTLs"
            )
        return self
