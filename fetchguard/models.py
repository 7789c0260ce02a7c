"""
Request Models
==============
Request descriptors and call outcomes.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Generic, Mapping, Optional, TypeVar, Union

import httpx

from fetchguard.cancellation import CancellationToken
from fetchguard.errors import ErrorKind, RequestError

T = TypeVar("T")


def canonical_url(url: Union[str, httpx.URL]) -> str:
    """Normalize scheme/host case and percent-encoding."""
    return str(httpx.URL(url))


def request_fingerprint(method: str, url: Union[str, httpx.URL]) -> str:
    """
    Deduplication key for a request.

    Only method and URL take part. Two writes with different bodies to the
    same URL share a fingerprint and are coalesced while in flight.
    """
    return f"{method.upper()}:{canonical_url(url)}"


@dataclass(frozen=True)
class RequestDescriptor:
    """One logical request, as handed to the executor."""
    method: str
    url: str
    body: Any = None
    headers: Optional[Mapping[str, str]] = None
    cancel_token: Optional[CancellationToken] = None
    max_attempts: Optional[int] = None

    def __post_init__(self):
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @property
    def fingerprint(self) -> str:
        return request_fingerprint(self.method, self.url)


@dataclass(frozen=True)
class Success(Generic[T]):
    """A settled call that produced a 2xx response."""
    response: T

    ok: ClassVar[bool] = True

    def unwrap(self) -> T:
        return self.response


@dataclass(frozen=True)
class Failure:
    """A settled call that failed."""
    error: RequestError

    ok: ClassVar[bool] = False

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def status_code(self) -> Optional[int]:
        return self.error.status_code

    def unwrap(self):
        raise self.error


Outcome = Union[Success[httpx.Response], Failure]
