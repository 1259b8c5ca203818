import pytest
from unittest.mock import AsyncMock

from chandir.core.circuit_breaker import CircuitBreaker, CircuitBreakerError


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_circuit_breaker_initial_state():
    """Test that the circuit breaker starts in closed state."""
    breaker = CircuitBreaker(failure_threshold=3, reset_timeout=10, name="test")
    assert breaker.state == "closed"
    assert breaker.failures == 0
    assert await breaker.allow_request() is True


@pytest.mark.asyncio
async def test_circuit_breaker_closed_to_open():
    """Test transition from closed to open state after failure threshold is reached."""
    breaker = CircuitBreaker(failure_threshold=3, reset_timeout=10, name="test")

    for _ in range(3):
        await breaker.record_failure()

    assert breaker.state == "open"
    assert breaker.failures == 3
    assert await breaker.allow_request() is False


@pytest.mark.asyncio
async def test_circuit_breaker_open_to_half_open_to_closed():
    clock = Clock()
    breaker = CircuitBreaker(failure_threshold=2, reset_timeout=30, name="test", clock=clock)
    await breaker.record_failure()
    await breaker.record_failure()
    assert breaker.state == "open"

    clock.now = 29
    assert await breaker.allow_request() is False

    clock.now = 31
    assert await breaker.allow_request() is True
    assert breaker.state == "half-open"

    await breaker.record_success()
    assert breaker.state == "closed"
    assert breaker.failures == 0


@pytest.mark.asyncio
async def test_half_open_failure_reopens_immediately():
    clock = Clock()
    breaker = CircuitBreaker(failure_threshold=5, reset_timeout=10, name="test", clock=clock)
    for _ in range(5):
        await breaker.record_failure()
    clock.now = 11
    assert await breaker.allow_request() is True

    await breaker.record_failure()

    assert breaker.state == "open"


@pytest.mark.asyncio
async def test_execute_rejects_while_open_without_calling():
    breaker = CircuitBreaker(failure_threshold=1, reset_timeout=60, name="test")
    failing = AsyncMock(side_effect=ConnectionError("down"))
    with pytest.raises(ConnectionError):
        await breaker.execute(failing)

    healthy = AsyncMock(return_value="ok")
    with pytest.raises(CircuitBreakerError):
        await breaker.execute(healthy)
    healthy.assert_not_called()


@pytest.mark.asyncio
async def test_execute_success_resets_failures():
    breaker = CircuitBreaker(failure_threshold=3, name="test")
    await breaker.record_failure()

    result = await breaker.execute(AsyncMock(return_value=42))

    assert result == 42
    assert breaker.failures == 0
