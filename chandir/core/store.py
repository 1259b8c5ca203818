"""Timeout and error translation around durable-store calls.

Repository coroutines are awaited through `run_store_operation`, which bounds
them with a timeout and turns driver failures into `ServiceUnavailableError` /
`DatabaseError` so that callers only ever see the directory exception hierarchy.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from structlog import get_logger

from chandir.core.exceptions import DatabaseError, ServiceUnavailableError

logger = get_logger(__name__)

T = TypeVar("T")


async def run_store_operation(
    operation: str,
    awaitable: Awaitable[T],
    timeout: float,
    subject: Optional[str] = None,
    generic_messages: bool = False,
    **context: Any,
) -> T:
    """Await a repository call with a deadline and translated failures.

    Args:
        operation: Name logged with any failure (e.g. ``"demote"``).
        awaitable: The repository coroutine.
        timeout: Deadline in seconds.
        subject: Channel id or other subject, logged on failure.
        generic_messages: Hide driver details from the raised message
            (production).
        **context: Extra keyword context for the log line.

    Raises:
        ServiceUnavailableError: The call timed out.
        DatabaseError: The driver raised.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.error(
            "store_operation_timeout",
            operation=operation,
            subject=subject,
            timeout=timeout,
            at=datetime.now(timezone.utc).isoformat(),
            **context,
        )
        raise ServiceUnavailableError(
            "Service temporarily unavailable"
            if generic_messages
            else f"Store operation '{operation}' timed out after {timeout}s"
        ) from exc
    except SQLAlchemyError as exc:
        logger.error(
            "store_operation_failed",
            operation=operation,
            subject=subject,
            error=str(exc),
            error_type=type(exc).__name__,
            at=datetime.now(timezone.utc).isoformat(),
            **context,
        )
        raise DatabaseError(
            "Service temporarily unavailable"
            if generic_messages
            else f"Store operation '{operation}' failed: {type(exc).__name__}"
        ) from exc
