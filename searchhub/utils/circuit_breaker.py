"""
Circuit breakers for the model providers, built on aiobreaker.

closed: calls pass through and consecutive failures are counted.
open: calls are refused with ``CircuitBreakerError`` until the reset timeout passes.
half-open: the next call is a trial; success closes the circuit, failure reopens it.
"""

from datetime import timedelta

from aiobreaker import CircuitBreaker, CircuitBreakerListener

from searchhub.utils.logging_config import logger


class LoggingListener(CircuitBreakerListener):
    def state_change(self, breaker, old, new):
        logger.warning(f"breaker.state name={breaker.name} {old} -> {new}")


def create_breaker(
    name: str, *, failure_threshold: int = 5, reset_timeout: float = 30.0
) -> CircuitBreaker:
    return CircuitBreaker(
        fail_max=max(1, failure_threshold),
        timeout_duration=timedelta(seconds=reset_timeout),
        listeners=[LoggingListener()],
        name=name,
    )
