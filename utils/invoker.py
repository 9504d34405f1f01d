"""Bounded retry with typed error classification for remote calls."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from utils.api_errors import (
    ApiError,
    ApiTransientError,
    Classifier,
    ErrorKind,
    classify_http_error,
)
from utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Union[T, Awaitable[T]]]
SleepFn = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class InvocationAttempt:
    """Outcome of one execution of a wrapped call."""

    attempt: int
    elapsed: float
    result: Any = None
    error: Optional[ApiError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


AttemptHook = Callable[[InvocationAttempt], None]


def _log_retry(retry_state) -> None:
    error = retry_state.outcome.exception()
    logger.warning(
        "Retrying API call after transient failure",
        extra={
            "attempt": retry_state.attempt_number,
            "delay": retry_state.next_action.sleep if retry_state.next_action else None,
            "error": str(error),
        },
    )


class ResilientInvoker:
    """Run zero-argument operations with bounded exponential backoff.

    Failures are classified with ``classifier``. Only ``TRANSIENT`` failures
    are retried; ``UNAUTHORIZED`` and ``UNKNOWN`` surface on the first attempt.
    The surfaced error is always an :class:`ApiError` chained to the original
    exception.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        *,
        classifier: Classifier = classify_http_error,
        sleep: SleepFn = asyncio.sleep,
        on_attempt: Optional[AttemptHook] = None,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self.classifier = classifier
        self._sleep = sleep
        self._on_attempt = on_attempt

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self.policy.max_attempts),
            wait=wait_exponential(
                multiplier=self.policy.base_delay,
                exp_base=self.policy.multiplier,
                max=self.policy.max_delay,
            ),
            retry=retry_if_exception_type(ApiTransientError),
            sleep=self._sleep,
            before_sleep=_log_retry,
        )

    def classify(self, exc: Exception, description: str) -> ApiError:
        if isinstance(exc, ApiError):
            return exc
        kind = self.classifier(exc)
        if not isinstance(kind, ErrorKind):
            kind = ErrorKind.UNKNOWN
        return ApiError.from_kind(kind, f"{description} failed: {exc}", exc)

    async def invoke(self, operation: Operation, *, description: str = "API call") -> Any:
        """Execute ``operation`` until it succeeds or the policy gives up."""

        started = time.monotonic()
        async for attempt in self._retrying():
            with attempt:
                number = attempt.retry_state.attempt_number
                try:
                    result = operation()
                    if inspect.isawaitable(result):
                        result = await result
                except Exception as exc:
                    error = self.classify(exc, description)
                    self._record(number, started, error=error)
                    if error is exc:
                        raise
                    raise error from exc
                self._record(number, started, result=result)
                return result
        # AsyncRetrying either returns from inside the loop or raises.
        raise RuntimeError("retry loop exited without an outcome")  # pragma: no cover

    def _record(
        self,
        number: int,
        started: float,
        *,
        result: Any = None,
        error: Optional[ApiError] = None,
    ) -> None:
        if error is not None:
            logger.debug(
                "API call attempt failed",
                extra={"attempt": number, "kind": error.kind.value},
            )
        if self._on_attempt is None:
            return
        self._on_attempt(
            InvocationAttempt(
                attempt=number,
                elapsed=time.monotonic() - started,
                result=result,
                error=error,
            )
        )
