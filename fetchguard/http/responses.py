"""
Response Decoding
=================
Turns raw responses into typed errors or decoded bodies.
"""

from typing import Any, Optional, Type, TypeVar, Union

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from fetchguard.errors import HTTPStatusError, RequestError

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class ErrorBody(BaseModel):
    """Common shapes of backend error payloads."""
    model_config = ConfigDict(extra="allow")

    message: Optional[str] = None
    detail: Any = None
    error: Any = None
    code: Optional[Union[str, int]] = None

    def best_message(self) -> Optional[str]:
        for candidate in (self.message, self.detail, self.error):
            if isinstance(candidate, str) and candidate:
                return candidate
        return None


def _request_url(response: httpx.Response) -> Optional[str]:
    try:
        return str(response.request.url)
    except RuntimeError:
        return None


def _is_json(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "")
    return "application/json" in content_type or content_type.endswith("+json")


def parse_failure_response(response: httpx.Response) -> HTTPStatusError:
    """
    Build an :class:`HTTPStatusError` from a non-2xx response.

    JSON bodies are decoded for a message and code; anything else is kept as
    text in ``details``.
    """
    status = response.status_code
    message = f"HTTP {status} Error"
    code = None
    details: Any = response.text or None

    if _is_json(response):
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            try:
                body = ErrorBody.model_validate(payload)
            except ValidationError:
                body = None
            if body is not None:
                message = body.best_message() or message
                code = str(body.code) if body.code is not None else None
            details = payload

    return HTTPStatusError(message, status_code=status, code=code, details=details, response=response)


def parse_json_response(
    response: httpx.Response,
    response_model: Optional[Type[M]] = None,
) -> Union[M, Any, None]:
    """
    Decode a JSON body.

    Returns None for 204/205 and for successful non-JSON responses. Raises
    :class:`RequestError` for non-JSON error responses and for bodies that
    cannot be decoded.
    """
    if response.status_code in (204, 205):
        return None

    if not _is_json(response):
        logger.warning(
            "non_json_response",
            url=_request_url(response),
            status=response.status_code,
            content_type=response.headers.get("content-type"),
        )
        if response.is_success:
            return None
        raise HTTPStatusError(
            f"Expected JSON response but received {response.headers.get('content-type') or 'unknown content type'}",
            status_code=response.status_code,
            response=response,
        )

    try:
        data = response.json()
    except ValueError as e:
        logger.error("json_parse_failed", status=response.status_code, error=str(e))
        raise RequestError(
            "Failed to parse response as JSON",
            status_code=response.status_code,
        ) from e

    if response_model is not None:
        return response_model.model_validate(data)
    return data
