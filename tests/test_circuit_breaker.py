"""
Unit Tests for the Circuit Breaker
==================================
"""

import pytest


def make_breaker(clock, **overrides):
    from fetchguard.circuit_breaker import CircuitBreaker, CircuitBreakerConfig

    return CircuitBreaker(CircuitBreakerConfig(**overrides), clock=clock)


class TestCircuitBreaker:
    """State machine transitions."""

    @pytest.mark.asyncio
    async def test_opens_after_threshold(self, clock):
        """Should open after 5 consecutive failures."""
        from fetchguard.circuit_breaker import CircuitState

        breaker = make_breaker(clock)

        for _ in range(4):
            await breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED
        assert await breaker.allow_request() is True

        await breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
        assert await breaker.allow_request() is False
        assert breaker.metrics["total_rejections"] == 1

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, clock):
        breaker = make_breaker(clock)

        for _ in range(4):
            await breaker.record_failure()
        await breaker.record_success()
        await breaker.record_failure()

        assert breaker.snapshot() == {"state": "closed", "consecutive_failures": 1}

    @pytest.mark.asyncio
    async def test_stays_open_until_reset_timeout_elapses(self, clock):
        from fetchguard.circuit_breaker import CircuitState

        breaker = make_breaker(clock, failure_threshold=1, reset_timeout=60.0)
        await breaker.record_failure()

        clock.advance(60.0)
        assert await breaker.allow_request() is False
        assert breaker.retry_after() == 0.0

        clock.advance(0.5)
        assert await breaker.allow_request() is True
        assert breaker.state == CircuitState.HALF_OPEN

    @pytest.mark.asyncio
    async def test_half_open_admits_single_probe(self, clock):
        """Only one probe passes while half-open."""
        breaker = make_breaker(clock, failure_threshold=1)
        await breaker.record_failure()
        clock.advance(61)

        assert await breaker.allow_request() is True
        assert await breaker.allow_request() is False

    @pytest.mark.asyncio
    async def test_half_open_success_closes(self, clock):
        from fetchguard.circuit_breaker import CircuitState

        breaker = make_breaker(clock)
        for _ in range(5):
            await breaker.record_failure()
        clock.advance(61)
        await breaker.allow_request()

        await breaker.record_success()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self, clock):
        from fetchguard.circuit_breaker import CircuitState

        breaker = make_breaker(clock)
        for _ in range(5):
            await breaker.record_failure()
        clock.advance(61)
        await breaker.allow_request()

        await breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
        assert breaker.consecutive_failures == 6
        assert breaker.retry_after() == pytest.approx(60.0)

    @pytest.mark.asyncio
    async def test_released_probe_frees_the_slot(self, clock):
        """A probe with no recorded outcome lets the next caller probe."""
        from fetchguard.circuit_breaker import CircuitState

        breaker = make_breaker(clock, failure_threshold=1)
        await breaker.record_failure()
        clock.advance(61)
        assert await breaker.allow_request() is True

        await breaker.release_probe()

        assert breaker.state == CircuitState.HALF_OPEN
        assert await breaker.allow_request() is True
        assert await breaker.allow_request() is False

    @pytest.mark.asyncio
    async def test_release_probe_outside_half_open_is_noop(self, clock):
        from fetchguard.circuit_breaker import CircuitState

        breaker = make_breaker(clock, failure_threshold=1)
        await breaker.release_probe()
        assert breaker.state == CircuitState.CLOSED

        await breaker.record_failure()
        await breaker.release_probe()

        assert breaker.state == CircuitState.OPEN
        assert await breaker.allow_request() is False

    @pytest.mark.asyncio
    async def test_reset(self, clock):
        breaker = make_breaker(clock, failure_threshold=1)
        await breaker.record_failure()

        breaker.reset()

        assert breaker.snapshot() == {"state": "closed", "consecutive_failures": 0}
        assert await breaker.allow_request() is True
