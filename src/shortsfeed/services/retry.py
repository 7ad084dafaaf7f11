"""Retry with exponential backoff for transient external failures."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, TypeVar

from rich.console import Console

from shortsfeed.services.pacing import Clock, Deadline, SystemClock

T = TypeVar("T")

RetryPredicate = Callable[[BaseException], bool]

MAX_BACKOFF_SECONDS = 10.0


def is_marked_retryable(exc: BaseException) -> bool:
    """Default predicate: retry errors that carry a truthy ``retryable`` attribute."""

    return bool(getattr(exc, "retryable", False))


class RetryPolicy:
    """Re-invoke an async operation while it fails with a retryable error."""

    def __init__(
        self,
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        max_backoff_seconds: float = MAX_BACKOFF_SECONDS,
        clock: Optional[Clock] = None,
        console: Optional[Console] = None,
        is_retryable: RetryPredicate = is_marked_retryable,
    ) -> None:
        self._max_attempts = max(1, max_attempts)
        self._backoff_seconds = max(0.0, backoff_seconds)
        self._max_backoff_seconds = max_backoff_seconds
        self._clock = clock or SystemClock()
        self._console = console or Console()
        self._is_retryable = is_retryable

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        description: str,
        deadline: Optional[Deadline] = None,
    ) -> T:
        """Run ``operation`` until it succeeds, fails permanently, or attempts run out.

        Parameters
        ----------
        operation:
            Zero-argument factory returning a fresh awaitable for every attempt.
        description:
            Human readable label used in log lines and deadline errors.
        deadline:
            Optional run deadline bounding both the attempts and the backoff pauses.
        """

        attempt = 0
        while True:
            attempt += 1
            try:
                if deadline is None:
                    return await operation()
                return await deadline.run(operation(), operation=description)
            except Exception as exc:
                if attempt >= self._max_attempts or not self._is_retryable(exc):
                    raise
                delay = min(self._max_backoff_seconds, self._backoff_seconds * (2 ** (attempt - 1)))
                self._console.log(
                    f"[yellow]{description} attempt {attempt} failed:[/yellow] {exc}; retrying in {delay:.1f}s"
                )
                if deadline is not None:
                    deadline.require(delay, description)
                await self._clock.sleep(delay)


__all__ = ["RetryPolicy", "RetryPredicate", "is_marked_retryable"]
