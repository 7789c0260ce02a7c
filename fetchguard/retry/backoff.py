"""
Retry Backoff
=============
Exponential backoff between attempts.

The delay doubles with every attempt: with the default one second base the
waits are 1s, 2s, 4s, ... Jitter and a cap are available but off by default so
the sequence stays deterministic.
"""

import random
from typing import Optional

from tenacity import RetryCallState
from tenacity.wait import wait_base


def compute_delay(
    attempt_index: int,
    base_delay: float = 1.0,
    exponential_base: float = 2.0,
    max_delay: Optional[float] = None,
) -> float:
    """
    Delay in seconds before the attempt following ``attempt_index``.

    Args:
        attempt_index: 0-based index of the attempt that just failed
        base_delay: Delay after the first failure, in seconds
        exponential_base: Growth factor per attempt
        max_delay: Optional ceiling, in seconds
    """
    if attempt_index < 0:
        raise ValueError("attempt_index must be >= 0")
    delay = base_delay * (exponential_base ** attempt_index)
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


class BackoffPolicy(wait_base):
    """
    Doubling backoff, usable directly or as a tenacity ``wait`` strategy.

    Example:
        policy = BackoffPolicy(base_delay=1.0)
        policy.delay(2)  # 4.0

        AsyncRetrying(wait=policy, ...)
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        exponential_base: float = 2.0,
        max_delay: Optional[float] = None,
        jitter: bool = False,
    ):
        self.base_delay = base_delay
        self.exponential_base = exponential_base
        self.max_delay = max_delay
        self.jitter = jitter

    def delay(self, attempt_index: int) -> float:
        delay = compute_delay(
            attempt_index,
            base_delay=self.base_delay,
            exponential_base=self.exponential_base,
            max_delay=self.max_delay,
        )
        if self.jitter:
            delay = delay * (0.5 + random.random())
        return delay

    def __call__(self, retry_state: RetryCallState) -> float:
        # tenacity numbers attempts from 1
        return self.delay(retry_state.attempt_number - 1)
