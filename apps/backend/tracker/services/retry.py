from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

from tracker.core.errors import TransientStoreFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def linear_backoff(base: float = 1.0) -> Callable[[int], float]:
    """attempt 1 -> base, attempt 2 -> 2*base, ..."""

    def _delay(attempt: int) -> float:
        return base * attempt

    return _delay


class RetryPolicy:
    """
    Runs an async operation up to `max_attempts` times.

    Only TransientStoreFailure is retried. After each failed attempt the
    policy waits `backoff(attempt)` seconds, the last one included, so the
    caller's next step starts after the full backoff. Anything else
    propagates immediately.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        backoff: Optional[Callable[[int], float]] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.backoff = backoff or linear_backoff(1.0)
        self.sleep = sleep

    async def run(self, op: Callable[[], Awaitable[T]], label: str = "operation") -> T:
        last: Optional[TransientStoreFailure] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await op()
            except TransientStoreFailure as e:
                last = e
                delay = self.backoff(attempt)
                logger.warning("%s attempt %d/%d failed: %s (waiting %.1fs)", label, attempt, self.max_attempts, e, delay)
                await self.sleep(delay)
        raise last


class Debouncer:
    """Lets a call through at most once per `window` seconds, whatever its outcome."""

    def __init__(self, window: float = 5.0, clock: Callable[[], float] = time.monotonic):
        self.window = window
        self.clock = clock
        self.last: Optional[float] = None

    def allow(self) -> bool:
        now = self.clock()
        if self.last is not None and (now - self.last) < self.window:
            return False
        self.last = now
        return True
