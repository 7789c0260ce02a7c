"""
In-Flight Deduplication
=======================
Registry of requests that are currently being executed.

At most one attempt loop runs per fingerprint. Later callers join the running
loop and receive the very same result. Entries are inserted when a loop is
created and removed when that loop settles, whatever the exit path.

The registry belongs to the event loop thread: the check-then-insert in
:meth:`InFlightRegistry.join_or_create` contains no suspension point, so no
other task can interleave with it.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import structlog

from fetchguard.cancellation import CancellationToken
from fetchguard.errors import RequestCancelledError

logger = structlog.get_logger(__name__)

Factory = Callable[[CancellationToken], Awaitable[Any]]


@dataclass(eq=False)
class PendingRequest:
    """A shared, not-yet-settled request."""
    fingerprint: str
    token: CancellationToken = field(default_factory=CancellationToken)
    task: Optional["asyncio.Task[Any]"] = None
    waiters: int = 0

    @property
    def abandoned(self) -> bool:
        """Every caller detached before the request settled."""
        return self.token.cancelled

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()


class InFlightRegistry:
    """
    Fingerprint -> pending request map.

    Example:
        entry, created = registry.join_or_create("GET:/v1/items", run_attempts)
        result = await registry.wait(entry, caller_token)
    """

    def __init__(self) -> None:
        self._pending: Dict[str, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, fingerprint: str) -> bool:
        return fingerprint in self._pending

    def get(self, fingerprint: str) -> Optional[PendingRequest]:
        return self._pending.get(fingerprint)

    def join_or_create(self, fingerprint: str, factory: Factory) -> Tuple[PendingRequest, bool]:
        """
        Return the pending entry for ``fingerprint``, creating it if needed.

        ``factory`` receives the entry's interest token, which fires once every
        waiter has detached. Returns ``(entry, created)``.
        """
        entry = self._pending.get(fingerprint)
        if entry is not None and not entry.done and not entry.abandoned:
            return entry, False

        entry = PendingRequest(fingerprint=fingerprint)
        self._pending[fingerprint] = entry
        entry.task = asyncio.ensure_future(self._run(entry, factory))
        # Also covers a task cancelled before its first step; release is idempotent.
        entry.task.add_done_callback(lambda _task: self._release(entry))
        return entry, True

    async def wait(self, entry: PendingRequest, token: Optional[CancellationToken] = None) -> Any:
        """
        Wait for ``entry`` to settle.

        If ``token`` fires first, only this waiter detaches and gets the
        token's reason raised. The shared request keeps running for the other
        waiters and is abandoned once none remain.
        """
        if entry.task is None:
            raise RuntimeError(f"Pending request {entry.fingerprint!r} was never started")

        entry.waiters += 1
        try:
            shared = asyncio.shield(entry.task)
            if token is None:
                return await shared
            return await token.run(shared)
        finally:
            entry.waiters -= 1
            if entry.waiters == 0 and not entry.task.done():
                logger.debug("pending_request_abandoned", fingerprint=entry.fingerprint)
                entry.token.cancel(RequestCancelledError("Request abandoned by all callers"))

    async def _run(self, entry: PendingRequest, factory: Factory) -> Any:
        try:
            return await factory(entry.token)
        finally:
            self._release(entry)

    def _release(self, entry: PendingRequest) -> None:
        if self._pending.get(entry.fingerprint) is entry:
            del self._pending[entry.fingerprint]
