"""
fetchguard
==========
Outbound request execution for a single HTTP backend: retries with backoff,
circuit breaking, in-flight deduplication and cancellation.
"""

__version__ = "0.1.0"

# Errors
from fetchguard.errors import (
    ErrorKind,
    RequestError,
    NetworkError,
    RequestTimeoutError,
    RequestCancelledError,
    HTTPStatusError,
    UnauthorizedError,
    CircuitOpenError,
)

# Models
from fetchguard.models import (
    RequestDescriptor,
    Success,
    Failure,
    Outcome,
    request_fingerprint,
)

# Cancellation
from fetchguard.cancellation import CancellationToken, compose_cancellation

# Retry
from fetchguard.retry import BackoffPolicy, Classification, classify, compute_delay

# Circuit Breaker
from fetchguard.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)

# Deduplication
from fetchguard.dedup import InFlightRegistry, PendingRequest

# Executor
from fetchguard.config import ExecutorConfig
from fetchguard.executor import RequestExecutor

# HTTP
from fetchguard.http import HttpxTransport, parse_failure_response, parse_json_response
from fetchguard.client import ApiClient

# Logging
from fetchguard.observability import configure_logging

__all__ = [
    # Errors
    "ErrorKind",
    "RequestError",
    "NetworkError",
    "RequestTimeoutError",
    "RequestCancelledError",
    "HTTPStatusError",
    "UnauthorizedError",
    "CircuitOpenError",
    # Models
    "RequestDescriptor",
    "Success",
    "Failure",
    "Outcome",
    "request_fingerprint",
    # Cancellation
    "CancellationToken",
    "compose_cancellation",
    # Retry
    "BackoffPolicy",
    "Classification",
    "classify",
    "compute_delay",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    # Deduplication
    "InFlightRegistry",
    "PendingRequest",
    # Executor
    "ExecutorConfig",
    "RequestExecutor",
    # HTTP
    "HttpxTransport",
    "parse_failure_response",
    "parse_json_response",
    "ApiClient",
    # Logging
    "configure_logging",
]
