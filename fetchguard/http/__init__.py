from .transport import DEFAULT_HEADERS, HttpxTransport, Transport
from .responses import ErrorBody, parse_failure_response, parse_json_response

__all__ = [
    "DEFAULT_HEADERS",
    "HttpxTransport",
    "Transport",
    "ErrorBody",
    "parse_failure_response",
    "parse_json_response",
]
