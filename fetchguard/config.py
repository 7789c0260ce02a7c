"""
Executor Configuration
======================
Tunables for retries, timeouts and the circuit breaker.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from fetchguard.circuit_breaker import CircuitBreakerConfig
from fetchguard.retry import BackoffPolicy

ENV_PREFIX = "FETCHGUARD_"

_TRUTHY = {"1", "true", "yes", "on"}


def _ms(value: str) -> float:
    return float(value) / 1000.0


@dataclass
class ExecutorConfig:
    """Configuration for a request executor. Durations are in seconds."""
    failure_threshold: int = 5
    reset_timeout: float = 60.0
    half_open_max_calls: int = 1
    max_attempts: int = 3
    per_attempt_timeout: Optional[float] = 30.0
    backoff_base: float = 1.0
    backoff_max: Optional[float] = None
    backoff_jitter: bool = False

    def __post_init__(self):
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.half_open_max_calls < 1:
            raise ValueError("half_open_max_calls must be >= 1")
        if self.reset_timeout < 0 or self.backoff_base < 0:
            raise ValueError("durations must be >= 0")
        if self.per_attempt_timeout is not None and self.per_attempt_timeout <= 0:
            raise ValueError("per_attempt_timeout must be > 0")

    @classmethod
    def from_env(
        cls,
        prefix: str = ENV_PREFIX,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ExecutorConfig":
        """
        Build a config from environment variables.

        Recognized (after ``prefix``): FAILURE_THRESHOLD, RESET_TIMEOUT_MS,
        MAX_ATTEMPTS, TIMEOUT_MS, BACKOFF_BASE_MS, BACKOFF_MAX_MS,
        BACKOFF_JITTER. Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        kwargs = {}

        def get(name: str) -> Optional[str]:
            value = env.get(prefix + name)
            return value if value not in (None, "") else None

        if get("FAILURE_THRESHOLD"):
            kwargs["failure_threshold"] = int(get("FAILURE_THRESHOLD"))
        if get("RESET_TIMEOUT_MS"):
            kwargs["reset_timeout"] = _ms(get("RESET_TIMEOUT_MS"))
        if get("MAX_ATTEMPTS"):
            kwargs["max_attempts"] = int(get("MAX_ATTEMPTS"))
        if get("TIMEOUT_MS"):
            kwargs["per_attempt_timeout"] = _ms(get("TIMEOUT_MS"))
        if get("BACKOFF_BASE_MS"):
            kwargs["backoff_base"] = _ms(get("BACKOFF_BASE_MS"))
        if get("BACKOFF_MAX_MS"):
            kwargs["backoff_max"] = _ms(get("BACKOFF_MAX_MS"))
        if get("BACKOFF_JITTER"):
            kwargs["backoff_jitter"] = get("BACKOFF_JITTER").lower() in _TRUTHY
        return cls(**kwargs)

    def breaker_config(self) -> CircuitBreakerConfig:
        return CircuitBreakerConfig(
            failure_threshold=self.failure_threshold,
            reset_timeout=self.reset_timeout,
            half_open_max_calls=self.half_open_max_calls,
        )

    def backoff_policy(self) -> BackoffPolicy:
        return BackoffPolicy(
            base_delay=self.backoff_base,
            max_delay=self.backoff_max,
            jitter=self.backoff_jitter,
        )
