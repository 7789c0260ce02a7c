"""
Shared fixtures: scripted transports and a controllable clock.
"""

import asyncio
from typing import Any, List, Optional

import httpx
import pytest


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedTransport:
    """
    Transport that replays a script of responses/exceptions.

    Each script item is an ``httpx.Response``, an exception instance, or an
    int status code. The last item repeats once the script runs out. When a
    ``gate`` is set, every call blocks on it before answering.
    """

    def __init__(self, *script: Any, gate: Optional[asyncio.Event] = None, delay: float = 0.0):
        self.script = list(script) or [200]
        self.gate = gate
        self.delay = delay
        self.calls: List[Any] = []
        self.cancelled = 0
        self.started = asyncio.Event()

    async def __call__(self, descriptor, token):
        self.calls.append(descriptor)
        self.started.set()
        index = min(len(self.calls) - 1, len(self.script) - 1)
        item = self.script[index]
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, int):
            return httpx.Response(item, json={"status": item})
        return item


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fast_config():
    """Executor config with no real waiting."""
    from fetchguard.config import ExecutorConfig

    return ExecutorConfig(backoff_base=0.0, per_attempt_timeout=5.0)


@pytest.fixture
def events():
    """Collects executor log events as (kind, details) tuples."""
    recorded = []

    def hook(kind, details):
        recorded.append((kind, details))

    hook.recorded = recorded
    return hook
