"""
Error Classification
====================
Decides whether a failure is worth another attempt.
"""

import asyncio
from typing import NamedTuple, Union

import httpx

from fetchguard.errors import (
    ErrorKind,
    HTTPStatusError,
    NetworkError,
    RequestError,
    RequestTimeoutError,
)


class Classification(NamedTuple):
    kind: ErrorKind
    retryable: bool


def classify_status(status_code: int) -> Classification:
    """Classify an HTTP status code received from the backend."""
    if 200 <= status_code < 300:
        return Classification(ErrorKind.GENERIC, False)
    if status_code == 401:
        return Classification(ErrorKind.HTTP_STATUS, False)
    if 500 <= status_code < 600:
        return Classification(ErrorKind.HTTP_STATUS, True)
    return Classification(ErrorKind.HTTP_STATUS, False)


def classify(error_or_status: Union[BaseException, httpx.Response, int]) -> Classification:
    """
    Classify a failure as retryable or terminal.

    Rules, first match wins:
    1. Cancellation is terminal; an internal timeout is retryable.
    2. Transport failures (refused, DNS, reset) are retryable.
    3. 5xx statuses are retryable.
    4. 401 is terminal.
    5. Any other non-2xx status is terminal.
    6. Everything else is terminal.
    """
    if isinstance(error_or_status, int):
        return classify_status(error_or_status)
    if isinstance(error_or_status, httpx.Response):
        return classify_status(error_or_status.status_code)

    exc = error_or_status
    if isinstance(exc, RequestError):
        return Classification(exc.kind, exc.retryable)
    if isinstance(exc, asyncio.CancelledError):
        return Classification(ErrorKind.CANCELLED, False)
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return Classification(ErrorKind.TIMEOUT, True)
    if isinstance(exc, (httpx.TransportError, ConnectionError, OSError)):
        return Classification(ErrorKind.NETWORK, True)
    if isinstance(exc, httpx.HTTPStatusError):
        return classify_status(exc.response.status_code)
    return Classification(ErrorKind.GENERIC, False)


def to_request_error(exc: BaseException) -> RequestError:
    """Map a raw transport exception to a :class:`RequestError`."""
    if isinstance(exc, RequestError):
        return exc

    kind, retryable = classify(exc)
    if kind == ErrorKind.TIMEOUT:
        error: RequestError = RequestTimeoutError("Request timed out")
    elif kind == ErrorKind.NETWORK:
        error = NetworkError(f"Failed to connect: {exc}")
    elif isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        error = HTTPStatusError(f"HTTP {status} Error", status_code=status, response=exc.response)
    else:
        error = RequestError(f"Unexpected error: {exc}", retryable=retryable)
    error.__cause__ = exc
    return error
