"""
Global exception handlers for the FastAPI application.

Each directory exception kind is translated into its HTTP status and the
standard ``{success, status, code, message, data}`` envelope.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from structlog import get_logger

from chandir.core.config.settings import settings
from chandir.core.exceptions import (
    ConflictError,
    DirectoryError,
    NotFoundError,
    PermissionError,
    RateLimitExceededError,
    ServiceUnavailableError,
    ValidationError,
)
from chandir.core.responses import failure_envelope

__all__ = [
    "validation_error_handler",
    "request_validation_error_handler",
    "not_found_error_handler",
    "permission_error_handler",
    "rate_limit_exceeded_error_handler",
    "conflict_error_handler",
    "service_unavailable_error_handler",
    "directory_error_handler",
    "register_exception_handlers",
]

logger = get_logger(__name__)


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handles `ValidationError`, returning a `400 Bad Request`."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=failure_envelope(exc.code, exc.message),
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handles FastAPI query/body validation failures with the same envelope as `ValidationError`."""
    errors = [
        {"field": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=failure_envelope("invalid_argument", "Invalid request parameters", errors),
    )


async def not_found_error_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Handles `NotFoundError`, returning a `404 Not Found`."""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=failure_envelope(exc.code, exc.message),
    )


async def permission_error_handler(request: Request, exc: PermissionError) -> JSONResponse:
    """Handles `PermissionError`, returning a `403 Forbidden`."""
    logger.warning(
        "Admin access denied",
        client_ip=_client_ip(request),
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content=failure_envelope(exc.code, exc.message),
    )


async def rate_limit_exceeded_error_handler(
    request: Request, exc: RateLimitExceededError
) -> JSONResponse:
    """Handles `RateLimitExceededError`, returning a `429 Too Many Requests`.

    The response carries a `Retry-After` header with the seconds until the
    window resets.
    """
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=failure_envelope(exc.code, exc.message, {"retry_after": exc.retry_after}),
        headers={"Retry-After": str(exc.retry_after)},
    )


async def conflict_error_handler(request: Request, exc: ConflictError) -> JSONResponse:
    """Handles `ConflictError`, returning a `409 Conflict`."""
    logger.warning("Unhandled conflict reached the API", code=exc.code, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=failure_envelope(exc.code, exc.message),
    )


async def service_unavailable_error_handler(
    request: Request, exc: ServiceUnavailableError
) -> JSONResponse:
    """Handles `ServiceUnavailableError` and `DatabaseError`, returning a `503`.

    In production the message is generic; details were logged at the store
    boundary.
    """
    message = "Service temporarily unavailable" if settings.is_production else exc.message
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=failure_envelope(exc.code, message, {"retryable": exc.retryable}),
    )


async def directory_error_handler(request: Request, exc: DirectoryError) -> JSONResponse:
    """Fallback for any other `DirectoryError`, returning a `500`."""
    logger.error("Unhandled directory error", code=exc.code, error=exc.message, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=failure_envelope(exc.code, exc.message),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Handlers are matched on the most specific class first, so subclasses
    (`ChannelNotFoundError`, `DatabaseError`) reach their parent's handler.
    """
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(NotFoundError, not_found_error_handler)
    app.add_exception_handler(PermissionError, permission_error_handler)
    app.add_exception_handler(RateLimitExceededError, rate_limit_exceeded_error_handler)
    app.add_exception_handler(ConflictError, conflict_error_handler)
    app.add_exception_handler(ServiceUnavailableError, service_unavailable_error_handler)
    app.add_exception_handler(DirectoryError, directory_error_handler)
