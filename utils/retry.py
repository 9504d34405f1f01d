"""Shared retry/backoff configuration utilities."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MAX_ATTEMPTS: int = 5
INITIAL_BACKOFF_SECONDS: float = 0.5
BACKOFF_MULTIPLIER: float = 2.0
MAX_BACKOFF_SECONDS: float = 8.0


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff shared by every call of one invoker.

    The wait between attempt ``i`` and ``i + 1`` is
    ``min(base_delay * multiplier ** (i - 1), max_delay)``.
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = INITIAL_BACKOFF_SECONDS
    multiplier: float = BACKOFF_MULTIPLIER
    max_delay: float = MAX_BACKOFF_SECONDS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if self.max_delay < 0:
            raise ValueError("max_delay must be >= 0")

    def delay_for(self, attempt: int) -> float:
        """Return the wait after the failed attempt number ``attempt`` (1-based)."""

        if attempt < 1:
            raise ValueError("attempt must be >= 1")
        try:
            delay = self.base_delay * self.multiplier ** (attempt - 1)
        except OverflowError:
            return self.max_delay
        return min(delay, self.max_delay)

    def delays(self) -> list[float]:
        return [self.delay_for(i) for i in range(1, self.max_attempts)]


NO_RETRY = RetryPolicy(max_attempts=1, base_delay=0.0, max_delay=0.0)
