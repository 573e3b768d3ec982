"""Sliding-window rate limiter for outbound quote API calls."""

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Optional

from finclash.core.exceptions import ConfigurationError
from finclash.domain.views import RateLimitStats

logger = logging.getLogger(__name__)

# Lower bound on a single wait so a waiter never busy-loops
MIN_WAIT_SECONDS = 0.1


class RateLimiter:
    """
    Sliding-window admission control.

    Keeps the timestamps of recent requests; a request is admitted while
    fewer than ``max_requests`` fall inside the trailing ``window_seconds``.
    Stale timestamps are pruned lazily before every check.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        provider: str = "finnhub",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_requests <= 0:
            raise ConfigurationError(f"Rate limit capacity must be positive, got {max_requests}")
        if window_seconds <= 0:
            raise ConfigurationError(f"Rate limit window must be positive, got {window_seconds}")
        self._max_requests = max_requests
        self._window = window_seconds
        self._provider = provider
        self._clock = clock
        self._sleep = sleep
        self._timestamps: deque[float] = deque()

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> float:
        return self._window

    def can_admit(self) -> bool:
        """Return True if a request may be issued now."""
        self._prune()
        return len(self._timestamps) < self._max_requests

    def record(self) -> None:
        """Record a request issued now."""
        self._timestamps.append(self._clock())

    async def wait_for_slot(self) -> None:
        """
        Suspend until a request would be admitted.

        Cancelling the awaiting task abandons the wait; nothing is recorded.
        """
        while not self.can_admit():
            wait = max(MIN_WAIT_SECONDS, self.time_until_next_slot())
            logger.debug("Rate limit reached for %s; waiting %.2fs", self._provider, wait)
            await self._sleep(wait)

    def remaining(self) -> int:
        """Number of requests that could be issued immediately."""
        self._prune()
        return self._max_requests - len(self._timestamps)

    def time_until_next_slot(self) -> float:
        """Seconds until the oldest in-window request expires (0 if admissible)."""
        if self.can_admit():
            return 0.0
        oldest = self._timestamps[0]
        return max(0.0, oldest + self._window - self._clock())

    def stats(self, provider: Optional[str] = None) -> RateLimitStats:
        return RateLimitStats(
            remaining=self.remaining(),
            total=self._max_requests,
            time_until_reset=self.time_until_next_slot(),
            provider=provider or self._provider,
        )

    def _prune(self) -> None:
        cutoff = self._clock() - self._window
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()
