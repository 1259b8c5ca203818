"""Middleware configuration for the FastAPI application.

Registers CORS and the per-IP rate limit applied to every request before it
reaches a route.
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette import status
from structlog import get_logger

from chandir.core.config.settings import settings
from chandir.core.exceptions import RateLimitExceededError
from chandir.core.responses import failure_envelope

logger = get_logger(__name__)

UNLIMITED_PATHS = ("/health",)


def configure_middleware(app: FastAPI) -> None:
    """Configure all middleware for the FastAPI application.

    Args:
        app (FastAPI): The FastAPI application instance
    """
    app.middleware("http")(ip_rate_limit_middleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def get_client_ip(request: Request) -> Optional[str]:
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return None


async def ip_rate_limit_middleware(request: Request, call_next):
    """Apply the global per-IP limit to every request and the API limit to ``/api/*``.

    Requests with no identifiable client IP are not limited. Errors raised in
    middleware bypass the exception handlers, so the 429 envelope is built here.
    """
    container = getattr(request.app.state, "container", None)
    ip = get_client_ip(request)
    path = request.url.path
    if container is None or ip is None or path.startswith(UNLIMITED_PATHS):
        return await call_next(request)

    limiter = container.rate_limiter
    try:
        await limiter.check_global_ip(ip)
        if path.startswith("/api/"):
            await limiter.check_api_ip(ip)
    except RateLimitExceededError as exc:
        logger.warning("ip_rate_limited", client_ip=ip, path=path, retry_after=exc.retry_after)
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=failure_envelope(exc.code, exc.message, {"retry_after": exc.retry_after}),
            headers={"Retry-After": str(exc.retry_after)},
        )

    request.state.client_ip = ip
    return await call_next(request)
