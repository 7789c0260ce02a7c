"""
Circuit Breaker
===============
Async circuit breaker protecting the backend during sustained failures.

States:

1. CLOSED: Normal operation, requests flow through
2. OPEN: Backend is failing, requests are immediately rejected
3. HALF-OPEN: A probe request tests whether the backend has recovered

Usage:
    from fetchguard.circuit_breaker import CircuitBreaker, CircuitBreakerConfig

    breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=5))
    executor = RequestExecutor(transport, breaker=breaker)
"""

from .models import (
    CircuitState,
    CircuitBreakerConfig,
    CircuitBreakerState,
)

from .breaker import CircuitBreaker

__all__ = [
    # Models
    "CircuitState",
    "CircuitBreakerConfig",
    "CircuitBreakerState",
    # Breaker
    "CircuitBreaker",
]
