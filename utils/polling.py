"""Poll an asynchronous status accessor until a predicate holds."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, wait_fixed

from utils.api_errors import ApiTransientError, WaitTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NOTHING_OBSERVED = object()


async def wait_until(
    fetch: Callable[[], Awaitable[T]],
    predicate: Callable[[T], bool],
    *,
    timeout: float,
    interval: float,
    backoff: float = 1.0,
    max_interval: Optional[float] = None,
    description: str = "condition",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Return the first status returned by ``fetch`` that satisfies ``predicate``.

    Parameters
    ----------
    fetch:
        Zero-argument coroutine factory, normally already wrapped by
        :class:`utils.invoker.ResilientInvoker`.
    predicate:
        Condition evaluated against every fetched status.
    timeout:
        Wall-clock budget in seconds. The deadline is only checked between
        polls; an in-flight fetch is never cancelled.
    interval:
        Wait before the second poll. Multiplied by ``backoff`` after every poll
        and capped at ``max_interval`` when given.

    Raises
    ------
    WaitTimeoutError
        The deadline elapsed; ``last_status`` holds the last observed value.
    ApiError
        Any non-transient failure from ``fetch`` is propagated immediately.
    """

    if timeout < 0:
        raise ValueError("timeout must be >= 0")
    if interval < 0:
        raise ValueError("interval must be >= 0")
    if backoff < 1:
        raise ValueError("backoff must be >= 1")

    deadline = clock() + timeout
    last_status: Any = _NOTHING_OBSERVED
    last_error: Optional[ApiTransientError] = None
    current_interval = interval
    polls = 0

    while True:
        polls += 1
        try:
            status = await fetch()
        except ApiTransientError as exc:
            last_error = exc
            logger.warning(
                "Transient failure while waiting for %s: %s",
                description,
                exc,
                extra={"poll": polls},
            )
        else:
            last_status = status
            if predicate(status):
                logger.info(
                    "%s reached after %d poll(s)",
                    description,
                    polls,
                )
                return status
            logger.debug(
                "%s not reached yet",
                description,
                extra={"poll": polls, "status": repr(status)},
            )

        remaining = deadline - clock()
        if remaining <= 0:
            observed = None if last_status is _NOTHING_OBSERVED else last_status
            raise WaitTimeoutError(
                f"Timed out after {timeout:.1f}s waiting for {description};"
                f" last status: {observed!r}",
                last_status=observed,
                timeout=timeout,
            ) from last_error

        await sleep(min(current_interval, remaining))
        current_interval *= backoff
        if max_interval is not None:
            current_interval = min(current_interval, max_interval)


def wait_for(
    condition: Callable[[], bool],
    *,
    timeout: float,
    interval: float,
    description: str = "condition",
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Blocking counterpart of :func:`wait_until` for CLI driven checks.

    Exceptions raised by ``condition`` propagate immediately.
    """

    retrying = Retrying(
        stop=stop_after_delay(timeout),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda satisfied: not satisfied),
        sleep=sleep,
    )
    try:
        retrying(condition)
    except RetryError as exc:
        raise WaitTimeoutError(
            f"Timed out after {timeout:.1f}s waiting for {description}",
            last_status=False,
            timeout=timeout,
        ) from exc
    logger.info("%s reached", description)
