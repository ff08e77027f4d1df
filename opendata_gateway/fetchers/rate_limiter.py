"""
Request spacing for the open-data portal.

One limiter is shared by every endpoint of a gateway so the aggregate
request rate stays under the portal's per-token ceiling.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

# Backoff never grows past 2**6 times the base interval
MAX_MULTIPLIER = 64


class RateLimiter:
    """
    Enforces a minimum interval between requests with adaptive backoff.

    The interval is base_interval * multiplier, capped at max_interval. Each
    throttling signal doubles the multiplier; a success resets it to 1.
    Arrival decisions are serialized on an asyncio.Lock, so concurrent
    callers are spaced one after another.
    """

    def __init__(
        self,
        base_interval: float,
        max_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize rate limiter.

        Args:
            base_interval: Minimum seconds between requests when not throttled
            max_interval: Upper bound for the backed-off interval
            clock: Monotonic time source (injectable for tests)
            sleep: Coroutine used to wait (injectable for tests)
        """
        self.base_interval = base_interval
        self.max_interval = max_interval
        self.multiplier = 1
        self._clock = clock
        self._sleep = sleep
        self._last_request: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def current_interval(self) -> float:
        """Minimum spacing currently enforced."""
        return min(self.base_interval * self.multiplier, self.max_interval)

    async def acquire(self) -> None:
        """Wait until the next request may be sent, then claim the slot."""
        async with self._lock:
            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                remaining = self.current_interval - elapsed
                if remaining > 0:
                    logger.debug(f"Rate limit: waiting {remaining:.2f}s")
                    await self._sleep(remaining)
            self._last_request = self._clock()

    def register_throttle(self) -> None:
        """Back off after the portal answered 429."""
        if self.multiplier < MAX_MULTIPLIER and self.base_interval * self.multiplier < self.max_interval:
            self.multiplier *= 2
        logger.warning(f"Throttled by portal, interval now {self.current_interval:.2f}s")

    def register_success(self) -> None:
        """Reset backoff after a non-throttled response."""
        if self.multiplier != 1:
            logger.debug("Rate limit backoff reset")
        self.multiplier = 1
