"""
Request Errors
==============
Exception hierarchy for every failure the executor can report.

Each error carries a ``kind`` (see :class:`ErrorKind`), an optional HTTP
status code and the retryability verdict that was applied while the request
was being attempted.
"""

from enum import Enum
from typing import Any, Dict, Optional

import httpx


class ErrorKind(str, Enum):
    """Failure taxonomy."""
    NETWORK = "network"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    HTTP_STATUS = "http_status"
    CIRCUIT_OPEN = "circuit_open"
    GENERIC = "generic"


class RequestError(Exception):
    """Base exception for all outbound request failures."""

    kind: ErrorKind = ErrorKind.GENERIC
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retryable: Optional[bool] = None,
        code: Optional[str] = None,
        details: Any = None,
    ):
        self.message = message
        self.status_code = status_code
        self.retryable = self.default_retryable if retryable is None else retryable
        self.code = code
        self.details = details
        if status_code is not None:
            super().__init__(f"[{self.kind.value}] {message} (Status: {status_code})")
        else:
            super().__init__(f"[{self.kind.value}] {message}")

    @property
    def counts_toward_breaker(self) -> bool:
        """Whether this failure is evidence that the backend is unhealthy."""
        if self.kind in (ErrorKind.NETWORK, ErrorKind.TIMEOUT):
            return True
        if self.kind == ErrorKind.HTTP_STATUS and self.status_code is not None:
            return 500 <= self.status_code < 600
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "status_code": self.status_code,
            "retryable": self.retryable,
            "code": self.code,
        }


class NetworkError(RequestError):
    """Raised when the backend could not be reached (refused, DNS, reset)."""
    kind = ErrorKind.NETWORK
    default_retryable = True


class RequestTimeoutError(RequestError):
    """Raised when a single attempt exceeded its timeout."""
    kind = ErrorKind.TIMEOUT
    default_retryable = True


class RequestCancelledError(RequestError):
    """Raised when the caller cancelled the request."""
    kind = ErrorKind.CANCELLED


class HTTPStatusError(RequestError):
    """Raised when a response arrived with a non-2xx status."""
    kind = ErrorKind.HTTP_STATUS

    def __init__(
        self,
        message: str,
        status_code: int,
        retryable: Optional[bool] = None,
        code: Optional[str] = None,
        details: Any = None,
        response: Optional[httpx.Response] = None,
    ):
        if retryable is None:
            retryable = 500 <= status_code < 600
        super().__init__(
            message,
            status_code=status_code,
            retryable=retryable,
            code=code,
            details=details,
        )
        self.response = response


class UnauthorizedError(HTTPStatusError):
    """Raised on 401. Never retried."""

    def __init__(self, message: str = "Unauthorized", response: Optional[httpx.Response] = None):
        super().__init__(message, status_code=401, retryable=False, response=response)


class CircuitOpenError(RequestError):
    """Raised when the circuit breaker rejects a call without attempting it."""
    kind = ErrorKind.CIRCUIT_OPEN

    def __init__(self, retry_after: float):
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker is open. Retry after {retry_after:.1f}s")
