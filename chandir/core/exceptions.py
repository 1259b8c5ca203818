from __future__ import annotations

"""Centralized, structured exception hierarchy for the channel directory.

Each exception carries a machine-readable `code` for programmatic handling and a
human-readable `message` for logging and the response envelope.

The hierarchy is designed to:
- Keep validation failures distinct from store failures so callers know which
  errors are worth retrying.
- Map cleanly to HTTP status codes in the API layer.
- Offer a consistent structure for logging and monitoring.
"""

from typing import Final

__all__: Final = [
    "DirectoryError",
    "ValidationError",
    "NotFoundError",
    "ChannelNotFoundError",
    "RateLimitExceededError",
    "ConflictError",
    "ServiceUnavailableError",
    "DatabaseError",
    "PermissionError",
]


class DirectoryError(Exception):
    """Base exception class for all custom errors in the directory core.

    Attributes:
        message (str): A human-readable error message, suitable for logging.
        code (str): A unique, machine-readable error code.
    """

    message: str
    code: str = "generic_error"

    def __init__(self, message: str, code: str = "generic_error"):
        self.message = message
        self.code = code
        Exception.__init__(self, self.message)

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Caller errors (never retried)
# ---------------------------------------------------------------------------


class ValidationError(DirectoryError):
    """Raised for malformed ids, fingerprints, percentages or page parameters.

    Detected before any store is touched. Maps to `400 Bad Request`.
    """

    def __init__(self, message: str, code: str = "invalid_argument"):
        super().__init__(message, code)


class NotFoundError(DirectoryError):
    """Raised when the subject of an operation does not exist.

    Terminal for the single operation, never fatal to the process. Maps to
    `404 Not Found`.
    """

    def __init__(self, message: str = "Resource not found", code: str = "not_found"):
        super().__init__(message, code)


class ChannelNotFoundError(NotFoundError):
    """Raised when a channel id does not match any stored channel."""

    def __init__(self, channel_id: str, code: str = "channel_not_found"):
        self.channel_id = channel_id
        super().__init__(f"Channel '{channel_id}' not found", code)


class PermissionError(DirectoryError):
    """Raised when the admin shared secret is missing or wrong. Maps to `403`."""

    def __init__(self, message: str = "Admin access denied", code: str = "permission_denied"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Operational errors
# ---------------------------------------------------------------------------


class RateLimitExceededError(DirectoryError):
    """Raised when a rate limit window is exhausted.

    The caller must back off for `retry_after` seconds. Maps to
    `429 Too Many Requests` with a `Retry-After` header.
    """

    def __init__(
        self,
        message: str = "Too many requests, please try again later",
        code: str = "rate_limit_exceeded",
        retry_after: int = 60,
    ):
        self.retry_after = retry_after
        super().__init__(message, code)


class ConflictError(DirectoryError):
    """Raised by repositories when a concurrent writer won a unique-key race.

    The like ledger handles it internally by re-deriving status, so it only
    reaches the API layer if a new call site forgets to. Maps to `409`.
    """

    def __init__(self, message: str, code: str = "conflict"):
        super().__init__(message, code)


class ServiceUnavailableError(DirectoryError):
    """Raised when a downstream store is unreachable or timed out.

    Attributes:
        retryable (bool): True when repeating the same call may succeed.
    """

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        code: str = "service_unavailable",
        retryable: bool = True,
    ):
        self.retryable = retryable
        super().__init__(message, code)


class DatabaseError(ServiceUnavailableError):
    """Wraps SQLAlchemy driver errors raised by the durable store."""

    def __init__(self, message: str, code: str = "database_error", retryable: bool = True):
        super().__init__(message, code, retryable)

