"""
Cancellation
============
Explicit cancellation tokens and their composition with timeouts.

A :class:`CancellationToken` fires at most once, carrying the
:class:`~fetchguard.errors.RequestError` that explains why. Listeners are
plain callables that receive that reason; every registration hands back an
``unregister`` callable so callers can detach deterministically.

Usage:
    token = CancellationToken()
    outcome_task = asyncio.create_task(
        executor.execute(RequestDescriptor("GET", url, cancel_token=token))
    )
    token.cancel()
"""

import asyncio
import itertools
from contextlib import contextmanager
from typing import Awaitable, Callable, Dict, Iterator, Optional, TypeVar

from fetchguard.errors import RequestCancelledError, RequestError, RequestTimeoutError

T = TypeVar("T")

Listener = Callable[[RequestError], None]


def _noop() -> None:
    return None


class CancellationToken:
    """A one-shot cancellation signal."""

    def __init__(self) -> None:
        self._reason: Optional[RequestError] = None
        self._listeners: Dict[int, Listener] = {}
        self._ids = itertools.count()

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> Optional[RequestError]:
        return self._reason

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def cancel(self, reason: Optional[RequestError] = None) -> bool:
        """
        Fire the token. Returns False if it had already fired.

        Listeners run synchronously, in registration order, and are dropped
        afterwards.
        """
        if self._reason is not None:
            return False
        self._reason = reason or RequestCancelledError("Request cancelled by caller")
        listeners = list(self._listeners.values())
        self._listeners.clear()
        for listener in listeners:
            listener(self._reason)
        return True

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that removes it."""
        if self._reason is not None:
            listener(self._reason)
            return _noop

        listener_id = next(self._ids)
        self._listeners[listener_id] = listener

        def unregister() -> None:
            self._listeners.pop(listener_id, None)

        return unregister

    def raise_if_cancelled(self) -> None:
        if self._reason is not None:
            raise self._reason

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` under this token.

        If the token fires first, the awaitable is cancelled and the token's
        reason is raised instead.
        """
        self.raise_if_cancelled()
        future = asyncio.ensure_future(awaitable)
        unregister = self.add_listener(lambda reason: future.cancel())
        try:
            return await future
        except asyncio.CancelledError:
            if self._reason is not None and future.cancelled():
                raise self._reason from None
            raise
        finally:
            unregister()

    async def sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds, waking early if the token fires."""
        self.raise_if_cancelled()
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()

        def wake(*_args) -> None:
            if not waiter.done():
                waiter.set_result(None)

        handle = loop.call_later(delay, wake)
        unregister = self.add_listener(wake)
        try:
            await waiter
        finally:
            handle.cancel()
            unregister()
        self.raise_if_cancelled()


@contextmanager
def compose_cancellation(
    parent: Optional[CancellationToken] = None,
    timeout: Optional[float] = None,
) -> Iterator[CancellationToken]:
    """
    Yield a token that fires when ``parent`` fires or ``timeout`` elapses.

    The timer and the listener on ``parent`` are released when the block
    exits, whichever way it exits. A parent that has already fired produces an
    already-fired token.
    """
    token = CancellationToken()
    unregister = parent.add_listener(token.cancel) if parent is not None else _noop
    handle: Optional[asyncio.TimerHandle] = None
    if timeout is not None and not token.cancelled:
        loop = asyncio.get_running_loop()
        handle = loop.call_later(
            timeout,
            token.cancel,
            RequestTimeoutError(f"Request timed out after {timeout:.3g}s"),
        )
    try:
        yield token
    finally:
        if handle is not None:
            handle.cancel()
        unregister()
