"""
HTTP Transport
==============
One HTTP attempt per call, backed by ``httpx.AsyncClient``.
"""

from typing import Awaitable, Dict, Mapping, Optional, Protocol

import httpx

from fetchguard.cancellation import CancellationToken
from fetchguard.models import RequestDescriptor

DEFAULT_HEADERS: Dict[str, str] = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "Cache-Control": "no-store",
}


class Transport(Protocol):
    """A single attempt: send the request, return whatever response arrives."""

    def __call__(
        self, descriptor: RequestDescriptor, token: CancellationToken
    ) -> Awaitable[httpx.Response]:
        ...


class HttpxTransport:
    """
    Default transport.

    Retries, timeouts and cancellation are owned by the executor, so the
    underlying client is built without its own timeout unless one is given.
    """

    def __init__(
        self,
        base_url: str = "",
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        merged = dict(DEFAULT_HEADERS)
        if headers:
            merged.update(headers)
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url,
            headers=merged,
            timeout=timeout,
            transport=transport,
        )

    async def __call__(self, descriptor: RequestDescriptor, token: CancellationToken) -> httpx.Response:
        token.raise_if_cancelled()
        body = descriptor.body
        kwargs = {}
        if isinstance(body, (bytes, str)):
            kwargs["content"] = body
        elif body is not None:
            kwargs["json"] = body

        request = self.client.build_request(
            descriptor.method.upper(),
            descriptor.url,
            headers=dict(descriptor.headers) if descriptor.headers else None,
            **kwargs,
        )
        return await self.client.send(request)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this transport created it."""
        if self._owns_client:
            await self.client.aclose()
