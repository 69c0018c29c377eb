import asyncio

import pytest
from aiobreaker import CircuitBreakerError, CircuitBreakerState

from searchhub.errors import EmbeddingError
from searchhub.utils.circuit_breaker import create_breaker

RESET = 0.05


async def ok():
    return "ok"


async def boom():
    raise EmbeddingError("provider down")


def make_breaker(**kwargs):
    options = {"failure_threshold": 2, "reset_timeout": RESET}
    options.update(kwargs)
    return create_breaker("models", **options)


async def trip(breaker):
    with pytest.raises(EmbeddingError):
        await breaker.call_async(boom)
    # The call that reaches the threshold reports the trip instead of the cause.
    with pytest.raises((EmbeddingError, CircuitBreakerError)):
        await breaker.call_async(boom)


def test_breaker_uses_the_configured_limits():
    breaker = create_breaker("models", failure_threshold=5, reset_timeout=30.0)

    assert breaker.fail_max == 5
    assert breaker.timeout_duration.total_seconds() == 30.0
    assert breaker.name == "models"


@pytest.mark.asyncio
async def test_opens_after_consecutive_failures():
    breaker = make_breaker()

    await trip(breaker)

    assert breaker.current_state == CircuitBreakerState.OPEN
    calls = []

    async def counted():
        calls.append(1)

    with pytest.raises(CircuitBreakerError):
        await breaker.call_async(counted)
    assert calls == []


@pytest.mark.asyncio
async def test_success_resets_the_failure_count():
    breaker = make_breaker()

    with pytest.raises(EmbeddingError):
        await breaker.call_async(boom)
    assert await breaker.call_async(ok) == "ok"
    with pytest.raises(EmbeddingError):
        await breaker.call_async(boom)

    assert breaker.current_state == CircuitBreakerState.CLOSED


@pytest.mark.asyncio
async def test_successful_trial_call_closes_the_circuit():
    breaker = make_breaker()
    await trip(breaker)

    await asyncio.sleep(RESET * 2)
    assert await breaker.call_async(ok) == "ok"

    assert breaker.current_state == CircuitBreakerState.CLOSED


@pytest.mark.asyncio
async def test_failed_trial_call_reopens_the_circuit():
    breaker = make_breaker()
    await trip(breaker)

    await asyncio.sleep(RESET * 2)
    with pytest.raises((EmbeddingError, CircuitBreakerError)):
        await breaker.call_async(boom)

    assert breaker.current_state == CircuitBreakerState.OPEN
    with pytest.raises(CircuitBreakerError):
        await breaker.call_async(ok)


@pytest.mark.asyncio
async def test_timeouts_count_as_failures():
    breaker = make_breaker(failure_threshold=1)

    async def slow():
        await asyncio.sleep(1)

    with pytest.raises((asyncio.TimeoutError, CircuitBreakerError)):
        await breaker.call_async(lambda: asyncio.wait_for(slow(), timeout=0.01))

    assert breaker.current_state == CircuitBreakerState.OPEN
