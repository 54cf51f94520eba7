"""Per-source minimum-interval throttle.

State is one last-request timestamp per source, owned by a single limiter
instance per process. It does not coordinate across processes.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping

logger = logging.getLogger(__name__)


class RateLimiter:
    """Guarantees at least 1 / requests_per_second between calls per source.

    Usage::

        limiter = RateLimiter({"linkedin": 0.5})
        await limiter.throttle("linkedin")  # returns immediately
        await limiter.throttle("linkedin")  # waits ~2s
    """

    def __init__(
        self,
        limits: Mapping[str, float] | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._limits: dict[str, float] = {k.lower(): v for k, v in (limits or {}).items()}
        self._last_request: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._clock = clock
        self._sleep = sleep

    def set_rate_limit(self, source: str, requests_per_second: float) -> None:
        """Configure (or override) the rate for a source."""
        if requests_per_second <= 0:
            msg = f"requests_per_second must be positive, got {requests_per_second}"
            raise ValueError(msg)
        self._limits[source.lower()] = requests_per_second

    def min_interval(self, source: str) -> float:
        """Minimum seconds between requests for source (0.0 if unconfigured)."""
        rps = self._limits.get(source.lower())
        return 1.0 / rps if rps else 0.0

    async def throttle(self, source: str) -> float:
        """Wait until the source may be called again. Returns seconds waited."""
        key = source.lower()
        interval = self.min_interval(key)
        if interval == 0.0:
            return 0.0

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            waited = 0.0
            last = self._last_request.get(key)
            if last is not None:
                elapsed = self._clock() - last
                if elapsed < interval:
                    waited = interval - elapsed
                    logger.debug("Throttling '%s' for %.2fs", key, waited)
                    await self._sleep(waited)
            self._last_request[key] = self._clock()
            return waited
