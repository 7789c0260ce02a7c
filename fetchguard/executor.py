"""
Request Executor
================
Runs logical requests against the backend with deduplication, circuit
breaking, retries and cancellation.

Per call:

    pending -> circuit check -> attempting(n) -> settled (success | failure)

1. A caller whose token already fired gets ``Failure(cancelled)`` at once.
2. Callers sharing a fingerprint share one attempt loop.
3. The loop's creator asks the circuit breaker for admission.
4. Attempts run one after another: transport call under a per-attempt
   timeout, classification, breaker bookkeeping, cancellable backoff.
5. The registry entry is dropped as soon as the loop settles.

Usage:
    executor = RequestExecutor(HttpxTransport(base_url="https://api.example.com"))
    outcome = await executor.execute(RequestDescriptor("GET", "/v1/campaigns"))
    if outcome.ok:
        data = outcome.response.json()
"""

import time
from functools import partial
from typing import Any, Callable, Dict, Optional

import httpx
import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from fetchguard.cancellation import CancellationToken, compose_cancellation
from fetchguard.circuit_breaker import CircuitBreaker, CircuitState
from fetchguard.config import ExecutorConfig
from fetchguard.dedup import InFlightRegistry
from fetchguard.errors import CircuitOpenError, ErrorKind, RequestError, UnauthorizedError
from fetchguard.http.responses import parse_failure_response
from fetchguard.http.transport import Transport
from fetchguard.models import Failure, Outcome, RequestDescriptor, Success
from fetchguard.observability import LogEventHook, default_log_event, emit
from fetchguard.retry import to_request_error

logger = structlog.get_logger(__name__)

FailureParser = Callable[[httpx.Response], RequestError]


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, RequestError) and exc.retryable


class RequestExecutor:
    """
    The single entry point for outbound requests.

    The executor owns one circuit breaker and one in-flight registry; both
    can be injected to share them or to control the clock in tests.
    """

    def __init__(
        self,
        transport: Transport,
        config: Optional[ExecutorConfig] = None,
        breaker: Optional[CircuitBreaker] = None,
        registry: Optional[InFlightRegistry] = None,
        parse_failure: FailureParser = parse_failure_response,
        on_unauthorized: Optional[Callable[[], None]] = None,
        log_event: Optional[LogEventHook] = default_log_event,
    ):
        self.config = config or ExecutorConfig()
        self.breaker = breaker or CircuitBreaker(self.config.breaker_config())
        self.registry = registry or InFlightRegistry()
        self._transport = transport
        self._parse_failure = parse_failure
        self._on_unauthorized = on_unauthorized
        self._log_event = log_event
        self._backoff = self.config.backoff_policy()

    async def execute(self, descriptor: RequestDescriptor) -> Outcome:
        """Execute ``descriptor``; never raises for request failures."""
        caller_token = descriptor.cancel_token
        if caller_token is not None and caller_token.cancelled:
            emit(self._log_event, "request_cancelled", method=descriptor.method, url=descriptor.url)
            return Failure(caller_token.reason)

        entry, created = self.registry.join_or_create(
            descriptor.fingerprint,
            partial(self._run, descriptor),
        )
        if not created:
            emit(
                self._log_event,
                "request_deduplicated",
                method=descriptor.method,
                url=descriptor.url,
            )

        try:
            return await self.registry.wait(entry, caller_token)
        except RequestError as error:
            # Only this caller detached; the shared loop keeps running.
            emit(self._log_event, "request_cancelled", method=descriptor.method, url=descriptor.url)
            return Failure(error)

    def circuit_breaker_state(self) -> Dict[str, Any]:
        return self.breaker.snapshot()

    def reset_circuit_breaker(self) -> None:
        self.breaker.reset()

    async def aclose(self) -> None:
        """Close the transport if it holds resources."""
        close = getattr(self._transport, "aclose", None)
        if close is not None:
            await close()

    async def _run(self, descriptor: RequestDescriptor, interest: CancellationToken) -> Outcome:
        if not await self.breaker.allow_request():
            error = CircuitOpenError(self.breaker.retry_after())
            emit(
                self._log_event,
                "circuit_rejected",
                method=descriptor.method,
                url=descriptor.url,
                retry_after=error.retry_after,
            )
            return Failure(error)

        # No await between admission and this read, so it reflects our slot.
        probe = self.breaker.state == CircuitState.HALF_OPEN
        try:
            return await self._run_attempts(descriptor, interest)
        finally:
            if probe:
                await self.breaker.release_probe()

    async def _run_attempts(self, descriptor: RequestDescriptor, interest: CancellationToken) -> Outcome:
        max_attempts = descriptor.max_attempts or self.config.max_attempts
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=self._backoff,
            retry=retry_if_exception(_is_retryable),
            sleep=interest.sleep,
            before_sleep=partial(self._before_sleep, descriptor, max_attempts),
            reraise=True,
        )
        attempt_number = 0

        try:
            async for attempt in retrying:
                with attempt:
                    attempt_number = attempt.retry_state.attempt_number
                    response = await self._attempt(descriptor, interest, attempt_number - 1)
        except RequestError as error:
            if error.retryable and attempt_number >= max_attempts:
                error.retryable = False
            if error.kind == ErrorKind.CANCELLED:
                emit(self._log_event, "request_cancelled", method=descriptor.method, url=descriptor.url)
            else:
                emit(
                    self._log_event,
                    "request_failed",
                    method=descriptor.method,
                    url=descriptor.url,
                    error_kind=error.kind.value,
                    status=error.status_code,
                    error=error.message,
                )
            return Failure(error)

        return Success(response)

    async def _attempt(
        self,
        descriptor: RequestDescriptor,
        interest: CancellationToken,
        attempt_index: int,
    ) -> httpx.Response:
        started = time.perf_counter()
        status: Optional[int] = None

        with compose_cancellation(interest, self.config.per_attempt_timeout) as token:
            try:
                token.raise_if_cancelled()
                response = await token.run(self._transport(descriptor, token))
                status = response.status_code

                if status == 401:
                    self._notify_unauthorized(descriptor)
                    raise UnauthorizedError(response=response)
                if not response.is_success:
                    raise self._parse_failure(response)

            except Exception as exc:
                error = to_request_error(exc)
                if error.counts_toward_breaker:
                    await self.breaker.record_failure(error)
                raise error

            finally:
                emit(
                    self._log_event,
                    "api_call",
                    method=descriptor.method,
                    url=descriptor.url,
                    status=status,
                    attempt=attempt_index + 1,
                    duration_ms=round((time.perf_counter() - started) * 1000, 1),
                )

        await self.breaker.record_success()
        return response

    def _notify_unauthorized(self, descriptor: RequestDescriptor) -> None:
        emit(self._log_event, "unauthorized", method=descriptor.method, url=descriptor.url)
        if self._on_unauthorized is None:
            return
        try:
            self._on_unauthorized()
        except Exception:
            logger.exception("unauthorized_callback_failed", url=descriptor.url)

    def _before_sleep(
        self,
        descriptor: RequestDescriptor,
        max_attempts: int,
        retry_state: RetryCallState,
    ) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        emit(
            self._log_event,
            "retrying",
            method=descriptor.method,
            url=descriptor.url,
            attempt=retry_state.attempt_number,
            max_attempts=max_attempts,
            delay=retry_state.next_action.sleep if retry_state.next_action else None,
            status=getattr(error, "status_code", None),
            error=str(error) if error else None,
        )
