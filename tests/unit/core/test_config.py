import pytest
from pydantic import ValidationError

from chandir.core.config.cache import CacheSettings
from chandir.core.config.redis import RedisSettings, parse_rate_limit


def test_parse_rate_limit():
    assert parse_rate_limit("20/minute") == (20, 60)
    assert parse_rate_limit("10000/hour") == (10000, 3600)


@pytest.mark.parametrize("value", ["20", "0/minute", "x/minute", "5/fortnight"])
def test_parse_rate_limit_rejects_malformed(value):
    with pytest.raises(ValueError):
        parse_rate_limit(value)


def test_redis_settings_reject_bad_policy_string():
    with pytest.raises(ValidationError):
        RedisSettings(RATE_LIMIT_LIKE="twenty per minute")


def test_redis_url_assembled_from_parts():
    config = RedisSettings(REDIS_HOST="cache", REDIS_PORT=6380, REDIS_DB=2, REDIS_URL="")

    assert config.REDIS_URL == "redis://cache:6380/2"


def test_cache_defaults_keep_local_ttl_shortest():
    config = CacheSettings()

    assert config.CACHE_LOCAL_TTL_SECONDS == 30
    assert config.CACHE_LISTING_TTL_SECONDS == 300
    assert config.CACHE_SEARCH_TTL_SECONDS == 600


def test_cache_settings_reject_local_ttl_not_shorter():
    with pytest.raises(ValidationError):
        CacheSettings(CACHE_LOCAL_TTL_SECONDS=300, CACHE_LISTING_TTL_SECONDS=300)
