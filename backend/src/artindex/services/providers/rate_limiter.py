"""Per-provider request pacing."""

import asyncio
import time

import structlog

logger = structlog.get_logger()


class MinIntervalRateLimiter:
    """Enforces a minimum interval between consecutive requests to one provider.

    Each adapter instance owns its own limiter, so different providers are paced
    independently and can be queried concurrently. The lock serializes callers
    sharing this limiter; the clock is monotonic.
    """

    def __init__(self, min_interval: float, name: str = "provider"):
        """Initialize limiter.

        Args:
            min_interval: Minimum seconds between two request starts (0 disables pacing)
            name: Provider name used in log events
        """
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = min_interval
        self.name = name
        self._last_request: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> float:
        """Wait until the next request may start.

        Returns:
            Seconds spent waiting (0.0 when no wait was needed)
        """
        async with self._lock:
            waited = 0.0
            if self._last_request is not None:
                elapsed = time.monotonic() - self._last_request
                remaining = self.min_interval - elapsed
                if remaining > 0:
                    logger.debug(
                        "rate_limiter.waiting", provider=self.name, wait_seconds=round(remaining, 3)
                    )
                    await asyncio.sleep(remaining)
                    waited = remaining
            self._last_request = time.monotonic()
            return waited

    async def penalize(self, seconds: float) -> None:
        """Push the next permitted request further out (after a 429)."""
        async with self._lock:
            now = time.monotonic()
            self._last_request = max(self._last_request or now, now) + seconds
