"""
Circuit Breaker Core
====================
Async circuit breaker guarding calls to the backend.
"""

import asyncio
import time
from typing import Any, Callable, Dict, Optional

import structlog

from .models import CircuitBreakerConfig, CircuitBreakerState, CircuitState

logger = structlog.get_logger(__name__)


class CircuitBreaker:
    """
    Async-compatible circuit breaker.

    All transitions happen under one ``asyncio.Lock``. Concurrent probes in
    the half-open window are limited by ``half_open_max_calls``; whatever
    outcome is recorded last decides the resulting state.

    Example:
        breaker = CircuitBreaker()

        if not await breaker.allow_request():
            raise CircuitOpenError(breaker.retry_after())
        try:
            response = await send()
        except NetworkError as e:
            await breaker.record_failure(e)
            raise
        await breaker.record_success()
    """

    def __init__(
        self,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._state = CircuitBreakerState()
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        """Current circuit state."""
        return self._state.state

    @property
    def consecutive_failures(self) -> int:
        return self._state.consecutive_failures

    @property
    def metrics(self) -> Dict[str, Any]:
        """Get circuit breaker metrics."""
        return {
            "state": self._state.state.value,
            "consecutive_failures": self._state.consecutive_failures,
            "total_calls": self._state.total_calls,
            "total_failures": self._state.total_failures,
            "total_successes": self._state.total_successes,
            "total_rejections": self._state.total_rejections,
            "last_failure": self._state.last_failure_time,
        }

    def snapshot(self) -> Dict[str, Any]:
        """Read-only view for health checks."""
        return {
            "state": self._state.state.value,
            "consecutive_failures": self._state.consecutive_failures,
        }

    def retry_after(self) -> float:
        """Seconds until an open circuit lets a probe through."""
        if self._state.state != CircuitState.OPEN or self._state.last_failure_time is None:
            return 0.0
        elapsed = self._clock() - self._state.last_failure_time
        return max(0.0, self.config.reset_timeout - elapsed)

    async def allow_request(self) -> bool:
        """Check and possibly transition state. Returns True if allowed."""
        async with self._lock:
            if self._state.state == CircuitState.CLOSED:
                return True

            if self._state.state == CircuitState.OPEN:
                last_failure = self._state.last_failure_time or 0.0
                if self._clock() - last_failure > self.config.reset_timeout:
                    self._state.state = CircuitState.HALF_OPEN
                    self._state.half_open_calls = 1
                    logger.info("circuit_half_open")
                    return True
                self._state.total_rejections += 1
                return False

            if self._state.half_open_calls < self.config.half_open_max_calls:
                self._state.half_open_calls += 1
                return True
            self._state.total_rejections += 1
            return False

    async def record_success(self) -> None:
        """Record a successful call."""
        async with self._lock:
            self._state.total_successes += 1
            self._state.total_calls += 1

            if self._state.state != CircuitState.CLOSED:
                logger.info("circuit_closed", previous=self._state.state.value)
            self._state.state = CircuitState.CLOSED
            self._state.consecutive_failures = 0
            self._state.half_open_calls = 0

    async def record_failure(self, exc: Optional[BaseException] = None) -> None:
        """Record a failed call."""
        async with self._lock:
            self._state.total_failures += 1
            self._state.total_calls += 1
            self._state.consecutive_failures += 1
            self._state.last_failure_time = self._clock()

            if self._state.state == CircuitState.HALF_OPEN:
                self._state.state = CircuitState.OPEN
                self._state.half_open_calls = 0
                logger.warning("circuit_reopened", error=str(exc) if exc else None)

            elif self._state.state == CircuitState.CLOSED:
                if self._state.consecutive_failures >= self.config.failure_threshold:
                    self._state.state = CircuitState.OPEN
                    logger.warning(
                        "circuit_opened",
                        failures=self._state.consecutive_failures,
                    )

    async def release_probe(self) -> None:
        """Give back a half-open slot whose call recorded neither outcome."""
        async with self._lock:
            if self._state.state == CircuitState.HALF_OPEN and self._state.half_open_calls > 0:
                self._state.half_open_calls -= 1
                logger.info("circuit_probe_released", in_flight=self._state.half_open_calls)

    def reset(self) -> None:
        """Force the breaker back to closed (for testing/admin)."""
        self._state = CircuitBreakerState()
        logger.info("circuit_reset")
