"""
Redis cache and rate limiting settings.
"""
import logging

from pydantic import Field, SecretStr, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

RATE_LIMIT_PERIODS = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
}


class RedisSettings(BaseSettings):
    """
    Defines settings for the Redis connection shared by the distributed cache
    tier and the rate limiter counters.

    Performance Note:
        - Rate limiting uses fixed-window counters; a burst straddling a window
          boundary can admit up to twice the configured count.
        - REDIS_SOCKET_TIMEOUT bounds every Redis round trip. Cache reads that
          time out count as a miss and rate limit checks that time out are
          allowed.
    """
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = Field(ge=1, le=65535, default=6379)
    REDIS_PASSWORD: SecretStr = SecretStr("")
    REDIS_SSL: bool = False
    REDIS_DB: int = Field(ge=0, default=0)
    REDIS_URL: str = Field(default="", validate_default=True)
    REDIS_SOCKET_TIMEOUT: float = Field(gt=0, default=0.5)

    # Rate limiting settings
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_LIKE: str = "20/minute"
    RATE_LIMIT_SEARCH: str = "30/minute"
    RATE_LIMIT_ADMIN: str = "50/minute"
    RATE_LIMIT_GLOBAL_IP: str = "60/minute"
    RATE_LIMIT_PAGE_IP: str = "10/minute"
    RATE_LIMIT_API_IP: str = "10000/hour"

    @field_validator("REDIS_URL", mode="before")
    @classmethod
    def assemble_redis_url(cls, v: str | None, info: ValidationInfo) -> str:
        """
        Assembles the Redis connection URL if not provided explicitly.
        Masks password in logs for security.

        Args:
            v: Explicitly provided URL or None.
            info: Validation context with other field values.

        Returns:
            Assembled or provided Redis URL.
        """
        if v:
            return v

        values = info.data
        protocol = "rediss" if values.get("REDIS_SSL") else "redis"
        redis_password = values.get("REDIS_PASSWORD")
        secret = (
            redis_password.get_secret_value()
            if isinstance(redis_password, SecretStr)
            else (redis_password or "")
        )
        password = f":{secret}@" if secret else ""

        url = (
            f"{protocol}://{password}{values.get('REDIS_HOST')}:"
            f"{values.get('REDIS_PORT')}/{values.get('REDIS_DB', 0)}"
        )
        logger.debug("Assembled REDIS_URL (password masked for security).")
        return url

    @field_validator(
        "RATE_LIMIT_LIKE",
        "RATE_LIMIT_SEARCH",
        "RATE_LIMIT_ADMIN",
        "RATE_LIMIT_GLOBAL_IP",
        "RATE_LIMIT_PAGE_IP",
        "RATE_LIMIT_API_IP",
    )
    @classmethod
    def validate_rate_limit_format(cls, value: str) -> str:
        """
        Validates the format of rate limit strings (e.g., '20/minute').

        Args:
            value: Rate limit string to validate.

        Returns:
            Validated rate limit string.

        Raises:
            ValueError: If format is invalid.
        """
        try:
            parse_rate_limit(value)
        except (ValueError, AttributeError) as e:
            logger.error(f"Invalid rate limit format: {value}. Error: {str(e)}")
            raise ValueError(f"Invalid rate limit format: {value}. Must be 'count/period'.")
        return value


def parse_rate_limit(value: str) -> tuple[int, int]:
    """Split a ``count/period`` string into ``(max_requests, window_seconds)``."""
    count, period = value.split("/")
    if not count.isdigit() or int(count) <= 0:
        raise ValueError("Rate limit count must be a positive integer.")
    if period not in RATE_LIMIT_PERIODS:
        raise ValueError("Rate limit period must be second, minute, hour, or day.")
    return int(count), RATE_LIMIT_PERIODS[period]
