"""Clock, throttling and deadline primitives used to pace outbound calls."""

from __future__ import annotations

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Optional, Protocol, TypeVar

from shortsfeed.config.settings import ServiceRateLimit

T = TypeVar("T")


class DeadlineExceededError(TimeoutError):
    """Raised when a run-level deadline expires before or during an operation."""


class Clock(Protocol):
    """Time source used by throttles, retries and deadlines."""

    def now(self) -> datetime:
        """Return the current wall-clock time as an aware UTC datetime."""

    def monotonic(self) -> float:
        """Return a monotonic timestamp in seconds."""

    async def sleep(self, seconds: float) -> None:
        """Suspend the caller for ``seconds``."""


class SystemClock:
    """Clock backed by the real system time and ``asyncio.sleep``."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class Deadline:
    """Absolute time budget shared by every call made during one ingestion run."""

    def __init__(self, seconds: Optional[float], *, clock: Optional[Clock] = None) -> None:
        self._clock = clock or SystemClock()
        self._expires_at = None if seconds is None else self._clock.monotonic() + seconds

    @classmethod
    def unbounded(cls, *, clock: Optional[Clock] = None) -> "Deadline":
        return cls(None, clock=clock)

    def remaining(self) -> Optional[float]:
        """Seconds left before expiry, or ``None`` for an unbounded deadline."""

        if self._expires_at is None:
            return None
        return self._expires_at - self._clock.monotonic()

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def require(self, seconds: float, operation: str) -> None:
        """Raise unless at least ``seconds`` remain for ``operation``."""

        remaining = self.remaining()
        if remaining is None:
            return
        if remaining <= 0 or remaining < seconds:
            raise DeadlineExceededError(f"Deadline exceeded before {operation}")

    async def run(self, awaitable: Awaitable[T], *, operation: str = "operation") -> T:
        """Await ``awaitable`` but give up once the deadline passes."""

        remaining = self.remaining()
        if remaining is None:
            return await awaitable
        if remaining <= 0:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise DeadlineExceededError(f"Deadline exceeded before {operation}")
        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError as exc:
            raise DeadlineExceededError(f"Deadline exceeded during {operation}") from exc


class Throttle(Protocol):
    """Anything that can delay the caller before the next outbound operation."""

    async def acquire(self, deadline: Optional[Deadline] = None) -> None:
        """Wait until the next operation may proceed."""


class FixedIntervalThrottle:
    """Waits a fixed interval on every acquisition (inter-batch and inter-channel pauses)."""

    def __init__(self, interval_seconds: float, *, clock: Optional[Clock] = None) -> None:
        self._interval = max(0.0, interval_seconds)
        self._clock = clock or SystemClock()

    @property
    def interval(self) -> float:
        return self._interval

    async def acquire(self, deadline: Optional[Deadline] = None) -> None:
        if self._interval <= 0:
            return
        if deadline is not None:
            deadline.require(self._interval, "pacing pause")
        await self._clock.sleep(self._interval)


@dataclass(slots=True)
class RateLimiter:
    """Token bucket with exponential backoff for rate-limited operations."""

    requests_per_minute: int
    burst: int
    clock: Clock = field(default_factory=SystemClock)
    backoff_base_seconds: float = 0.5
    max_backoff_seconds: float = 5.0
    _tokens: float = field(init=False, repr=False)
    _last_refill: float = field(init=False, repr=False)
    _refill_rate: float = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._tokens = float(self.burst)
        self._last_refill = self.clock.monotonic()
        self._refill_rate = self.requests_per_minute / 60.0 if self.requests_per_minute else 0.0

    @classmethod
    def from_config(cls, config: ServiceRateLimit, *, clock: Optional[Clock] = None) -> "RateLimiter":
        """Build a limiter from a single service entry of ``rate_limits.yaml``."""

        requests_per_minute = config.requests_per_minute or 60
        burst = config.burst or requests_per_minute
        return cls(requests_per_minute=requests_per_minute, burst=burst, clock=clock or SystemClock())

    async def acquire(self, deadline: Optional[Deadline] = None) -> None:
        """Wait until a token is available according to the configured rate limit."""

        if self.requests_per_minute <= 0:
            return

        attempt = 0
        while True:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return

            wait_time = (1.0 - self._tokens) / self._refill_rate if self._refill_rate else self.backoff_base_seconds
            backoff = min(self.max_backoff_seconds, self.backoff_base_seconds * (2**attempt))
            delay = max(wait_time, backoff)
            if deadline is not None:
                deadline.require(delay, "rate limiter wait")
            await self.clock.sleep(delay)
            attempt += 1

    def _refill(self) -> None:
        """Replenish available tokens based on elapsed time since the last refill."""

        now = self.clock.monotonic()
        elapsed = now - self._last_refill
        if elapsed <= 0 or self._refill_rate == 0:
            return

        self._tokens = min(self.burst, self._tokens + elapsed * self._refill_rate)
        self._last_refill = now


__all__ = [
    "Clock",
    "Deadline",
    "DeadlineExceededError",
    "FixedIntervalThrottle",
    "RateLimiter",
    "SystemClock",
    "Throttle",
]
