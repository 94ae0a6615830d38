"""Fixed-interval rate limiter shared by all calls to one provider."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """Enforce a minimum interval between successive calls to a provider.

    The first ``acquire()`` returns immediately; every later one waits until
    ``interval`` seconds have passed since the previous call was let through.
    One instance is shared by every call to the same provider so spacing holds
    across the resolver, the price fetcher and alternative-symbol searches.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """Initialize rate limiter.

        Args:
            name: Provider name for log messages
            interval: Minimum seconds between calls (0 disables waiting)
            clock: Monotonic clock, injectable for tests
            sleep: Async sleep function, injectable for tests
        """
        self.name = name
        self.interval = interval
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._last_call: Optional[float] = None
        self.total_wait = 0.0

    async def acquire(self) -> None:
        """Wait until the next call is allowed, then record it."""
        now = self._clock()
        if self._last_call is not None and self.interval > 0:
            wait = self._last_call + self.interval - now
            if wait > 0:
                logger.debug(f"{self.name}: waiting {wait:.2f}s before next call")
                self.total_wait += wait
                await self._sleep(wait)
                now = max(self._clock(), self._last_call + self.interval)
        self._last_call = now
