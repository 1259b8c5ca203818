from chandir.core.exceptions import (
    ChannelNotFoundError,
    DatabaseError,
    DirectoryError,
    NotFoundError,
    RateLimitExceededError,
    ServiceUnavailableError,
    ValidationError,
)


def test_directory_error_carries_message_and_code():
    error = DirectoryError("boom", "custom")

    assert error.message == "boom"
    assert error.code == "custom"
    assert str(error) == "boom"


def test_validation_error_default_code():
    error = ValidationError("bad page")

    assert error.code == "invalid_argument"
    assert isinstance(error, DirectoryError)


def test_channel_not_found_is_not_found():
    error = ChannelNotFoundError("acme")

    assert isinstance(error, NotFoundError)
    assert error.channel_id == "acme"
    assert "acme" in error.message
    assert error.code == "channel_not_found"


def test_rate_limit_error_carries_retry_after():
    error = RateLimitExceededError(retry_after=17)

    assert error.retry_after == 17
    assert error.code == "rate_limit_exceeded"


def test_database_error_is_retryable_unavailable():
    error = DatabaseError("driver failed")

    assert isinstance(error, ServiceUnavailableError)
    assert error.retryable is True
    assert error.code == "database_error"
