"""Circuit breaker guarding calls to the distributed cache.

An asyncio-compatible breaker with closed, open and half-open states. While it
is open the cache tier skips Redis entirely and serves misses, so a dead Redis
costs one timeout per `failure_threshold` calls instead of one per request.
"""

import asyncio
import time
from typing import Any, Callable, Coroutine, Optional, TypeVar

from structlog import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitBreakerError(Exception):
    """Raised when a call is attempted while the circuit is open."""

    def __init__(self, breaker_name: str, message: Optional[str] = None):
        self.breaker_name = breaker_name
        if message is None:
            message = f"Circuit breaker {breaker_name} is open"
        self.message = message
        super().__init__(self.message)


class CircuitBreaker:
    """Circuit breaker for a single downstream dependency.

    State Transitions:
    - CLOSED: All calls are allowed. After `failure_threshold` consecutive
      failures the state transitions to OPEN.
    - OPEN: All calls are rejected for `reset_timeout` seconds, then the state
      transitions to HALF-OPEN.
    - HALF-OPEN: One trial call is allowed. Success closes the circuit, failure
      opens it again.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 30,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the CircuitBreaker.

        Args:
            failure_threshold (int): Consecutive failures that open the circuit.
            reset_timeout (float): Seconds to stay OPEN before trying HALF-OPEN.
            name (str): Name used in log lines.
            clock: Monotonic time source, injectable for tests.
        """
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.name = name
        self._clock = clock

        self.failures = 0
        self.last_failure_time: Optional[float] = None
        self.state = "closed"  # "closed", "open" or "half-open"
        self._lock = asyncio.Lock()

    @property
    def is_closed(self) -> bool:
        return self.state == "closed"

    @property
    def is_open(self) -> bool:
        """Return True if calls are currently rejected."""
        if self.state == "open":
            if (
                self.last_failure_time is not None
                and self._clock() - self.last_failure_time >= self.reset_timeout
            ):
                self.state = "half-open"
                logger.info("Circuit breaker transitioning to half-open", breaker=self.name)
                return False
            return True
        return False

    async def allow_request(self) -> bool:
        async with self._lock:
            return not self.is_open

    async def record_success(self) -> None:
        async with self._lock:
            if self.state == "half-open":
                logger.info(
                    "Circuit breaker closed after successful half-open call", breaker=self.name
                )
            self.state = "closed"
            self.failures = 0
            self.last_failure_time = None

    async def record_failure(self) -> None:
        async with self._lock:
            self.failures += 1
            self.last_failure_time = self._clock()
            if self.state == "half-open" or self.failures >= self.failure_threshold:
                if self.state != "open":
                    logger.warning(
                        "Circuit breaker opened",
                        breaker=self.name,
                        failures=self.failures,
                    )
                self.state = "open"

    async def execute(
        self, func: Callable[..., Coroutine[Any, Any, T]], *args: Any, **kwargs: Any
    ) -> T:
        """Execute an async function with circuit breaker protection.

        Raises:
            CircuitBreakerError: If the circuit is open.
            Exception: Propagates exceptions from the executed function.
        """
        if not await self.allow_request():
            raise CircuitBreakerError(self.name)

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            await self.record_failure()
            logger.warning("Circuit breaker recorded failure", breaker=self.name, error=str(e))
            raise
        await self.record_success()
        return result
