"""
Unit Tests for Backoff and Error Classification
================================================
"""

import asyncio

import httpx
import pytest


class TestBackoff:
    """Tests for the doubling backoff."""

    def test_delays_double_from_one_second(self):
        """Attempts 0, 1, 2 wait 1s, 2s, 4s."""
        from fetchguard.retry import BackoffPolicy

        policy = BackoffPolicy()

        assert [policy.delay(i) for i in range(3)] == [1.0, 2.0, 4.0]

    def test_compute_delay_respects_cap(self):
        """Should never exceed max_delay."""
        from fetchguard.retry import compute_delay

        assert compute_delay(10, base_delay=1.0, max_delay=30.0) == 30.0
        assert compute_delay(3, base_delay=0.5) == 4.0

    def test_negative_attempt_rejected(self):
        from fetchguard.retry import compute_delay

        with pytest.raises(ValueError):
            compute_delay(-1)

    def test_jitter_stays_within_band(self):
        """Jitter scales the delay into [0.5x, 1.5x)."""
        from fetchguard.retry import BackoffPolicy

        policy = BackoffPolicy(base_delay=2.0, jitter=True)

        for _ in range(50):
            assert 2.0 <= policy.delay(1) < 6.0

    def test_tenacity_wait_uses_zero_based_index(self):
        """tenacity's first attempt maps to attempt index 0."""
        from types import SimpleNamespace
        from fetchguard.retry import BackoffPolicy

        policy = BackoffPolicy()

        assert policy(SimpleNamespace(attempt_number=1)) == 1.0
        assert policy(SimpleNamespace(attempt_number=3)) == 4.0


class TestClassifier:
    """Tests for the retryable/terminal decision."""

    def test_server_errors_retryable(self):
        from fetchguard.errors import ErrorKind
        from fetchguard.retry import classify

        for status in (500, 502, 503, 599):
            assert classify(status) == (ErrorKind.HTTP_STATUS, True)

    def test_client_errors_terminal(self):
        from fetchguard.retry import classify

        for status in (400, 401, 403, 404, 422):
            assert classify(status).retryable is False

    def test_response_is_classified_by_status(self):
        from fetchguard.retry import classify

        assert classify(httpx.Response(503)).retryable is True
        assert classify(httpx.Response(409)).retryable is False

    def test_transport_failures_are_network(self):
        """Connection refused, DNS and resets are retryable network errors."""
        from fetchguard.errors import ErrorKind
        from fetchguard.retry import classify

        assert classify(httpx.ConnectError("refused")) == (ErrorKind.NETWORK, True)
        assert classify(ConnectionResetError()) == (ErrorKind.NETWORK, True)

    def test_timeouts_retryable(self):
        from fetchguard.errors import ErrorKind
        from fetchguard.retry import classify

        assert classify(httpx.ReadTimeout("slow")) == (ErrorKind.TIMEOUT, True)
        assert classify(asyncio.TimeoutError()) == (ErrorKind.TIMEOUT, True)

    def test_cancellation_terminal(self):
        from fetchguard.errors import ErrorKind, RequestCancelledError
        from fetchguard.retry import classify

        assert classify(RequestCancelledError("stop")) == (ErrorKind.CANCELLED, False)

    def test_unknown_errors_generic(self):
        from fetchguard.errors import ErrorKind
        from fetchguard.retry import classify

        assert classify(ValueError("boom")) == (ErrorKind.GENERIC, False)

    def test_to_request_error_keeps_cause(self):
        """Raw exceptions are wrapped with the original chained."""
        from fetchguard.errors import NetworkError
        from fetchguard.retry import to_request_error

        original = httpx.ConnectError("refused")
        error = to_request_error(original)

        assert isinstance(error, NetworkError)
        assert error.retryable is True
        assert error.__cause__ is original

    def test_breaker_counts_only_backend_failures(self):
        """Network, timeout and 5xx count; 4xx and cancellation do not."""
        from fetchguard.errors import (
            HTTPStatusError,
            NetworkError,
            RequestCancelledError,
            RequestTimeoutError,
        )

        assert NetworkError("x").counts_toward_breaker
        assert RequestTimeoutError("x").counts_toward_breaker
        assert HTTPStatusError("x", status_code=503).counts_toward_breaker
        assert not HTTPStatusError("x", status_code=404).counts_toward_breaker
        assert not RequestCancelledError("x").counts_toward_breaker
