"""
API Client
==========
Convenience facade over :class:`~fetchguard.executor.RequestExecutor` for
code that prefers exceptions and decoded bodies over outcomes.
"""

from typing import Any, Callable, Dict, Mapping, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel

from fetchguard.cancellation import CancellationToken
from fetchguard.config import ExecutorConfig
from fetchguard.executor import RequestExecutor
from fetchguard.http.responses import parse_json_response
from fetchguard.http.transport import HttpxTransport
from fetchguard.models import RequestDescriptor

# Generic type for Pydantic models
T = TypeVar("T", bound=BaseModel)


class ApiClient:
    """
    Resilient async client for one backend.

    Features:
    - Retries on network errors, timeouts and 5xx responses.
    - Circuit breaking and in-flight deduplication via the executor.
    - Pydantic model deserialization.
    - Failures raised as :class:`~fetchguard.errors.RequestError`.

    Example:
        client = ApiClient("https://api.example.com/api", on_unauthorized=redirect_to_login)
        campaign = await client.get("/campaigns/42", response_model=Campaign)
    """

    def __init__(
        self,
        base_url: str,
        executor: Optional[RequestExecutor] = None,
        config: Optional[ExecutorConfig] = None,
        headers: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.executor = executor or RequestExecutor(
            HttpxTransport(headers=headers, transport=transport),
            config=config,
            on_unauthorized=on_unauthorized,
        )

    async def aclose(self):
        """Close the underlying HTTP client."""
        await self.executor.aclose()

    def url_for(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> str:
        """Join ``endpoint`` onto the base URL."""
        clean = endpoint if endpoint.startswith("/") else f"/{endpoint}"
        url = f"{self.base_url}{clean}"
        if params:
            url = str(httpx.URL(url, params=params))
        return url

    async def request(
        self,
        method: str,
        endpoint: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        response_model: Optional[Type[T]] = None,
        cancel_token: Optional[CancellationToken] = None,
        max_attempts: Optional[int] = None,
    ) -> Union[T, Any, None]:
        """Execute a request and decode its JSON body."""
        descriptor = RequestDescriptor(
            method=method,
            url=self.url_for(endpoint, params),
            body=json,
            cancel_token=cancel_token,
            max_attempts=max_attempts,
        )
        outcome = await self.executor.execute(descriptor)
        return parse_json_response(outcome.unwrap(), response_model)

    async def get(self, endpoint: str, params: Optional[Dict] = None, response_model: Optional[Type[T]] = None, **kwargs) -> Union[T, Any, None]:
        return await self.request("GET", endpoint, params=params, response_model=response_model, **kwargs)

    async def post(self, endpoint: str, json: Any = None, response_model: Optional[Type[T]] = None, **kwargs) -> Union[T, Any, None]:
        return await self.request("POST", endpoint, json=json, response_model=response_model, **kwargs)

    async def put(self, endpoint: str, json: Any = None, response_model: Optional[Type[T]] = None, **kwargs) -> Union[T, Any, None]:
        return await self.request("PUT", endpoint, json=json, response_model=response_model, **kwargs)

    async def patch(self, endpoint: str, json: Any = None, response_model: Optional[Type[T]] = None, **kwargs) -> Union[T, Any, None]:
        return await self.request("PATCH", endpoint, json=json, response_model=response_model, **kwargs)

    async def delete(self, endpoint: str, response_model: Optional[Type[T]] = None, **kwargs) -> Union[T, Any, None]:
        return await self.request("DELETE", endpoint, response_model=response_model, **kwargs)
