from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging
import time

logger = logging.getLogger(__name__)


class RequestPacer:
    """Spaces call starts to stay under a requests-per-minute ceiling.

    Callers await `wait()` before each request. Starts are serialized through
    a lock, so concurrent callers queue up rather than burst.

    Args:
        requests_per_minute: Ceiling to respect (e.g. 6 on constrained tiers)
        clock: Monotonic clock in seconds
        sleep: Awaitable sleep (injectable for tests)
    """

    def __init__(
        self,
        requests_per_minute: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        self.min_interval_s = 60.0 / requests_per_minute
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_start: float | None = None

    async def wait(self) -> float:
        """Block until the next call may start.

        Returns:
            Seconds waited (0.0 when no wait was needed)
        """
        async with self._lock:
            now = self._clock()
            waited = 0.0
            if self._last_start is not None:
                earliest = self._last_start + self.min_interval_s
                if earliest > now:
                    waited = earliest - now
                    logger.debug("Pacing: waiting %.1fs before next request", waited)
                    await self._sleep(waited)
                    now = max(self._clock(), earliest)
            self._last_start = now
            return waited
