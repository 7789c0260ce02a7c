"""
Observability
=============
Structured logging setup and the executor's event hook.

Usage:
    from fetchguard.observability import configure_logging

    # Setup at startup
    configure_logging(service_name="campaign-admin", json_output=True)

    # Route executor events elsewhere
    executor = RequestExecutor(transport, log_event=my_hook)
"""

import logging
import sys
from typing import Any, Callable, Dict, Optional

import structlog

logger = structlog.get_logger("fetchguard")

LogEventHook = Callable[[str, Dict[str, Any]], None]

# Events that deserve more than debug level by default
_EVENT_LEVELS = {
    "retrying": logging.WARNING,
    "request_failed": logging.ERROR,
    "circuit_rejected": logging.WARNING,
    "unauthorized": logging.WARNING,
}


def configure_logging(
    service_name: Optional[str] = None,
    level: str = "INFO",
    json_output: bool = True,
) -> None:
    """
    Configure structlog for the host application.

    Args:
        service_name: Bound to every event as ``service`` when given
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines (production) instead of console output
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )
    if service_name:
        structlog.contextvars.bind_contextvars(service=service_name)


def default_log_event(kind: str, details: Dict[str, Any]) -> None:
    """Send an executor event to the ``fetchguard`` structlog logger."""
    logger.log(_EVENT_LEVELS.get(kind, logging.DEBUG), kind, **details)


def emit(hook: Optional[LogEventHook], kind: str, /, **details: Any) -> None:
    """Fire-and-forget: a failing hook never affects the request."""
    if hook is None:
        return
    try:
        hook(kind, details)
    except Exception:
        pass
