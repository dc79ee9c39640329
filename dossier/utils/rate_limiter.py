"""Token bucket limiter for outbound search calls."""

from __future__ import annotations

import asyncio
import time

from dossier.utils.logging import get_logger

logger = get_logger(__name__)


class TokenBucketRateLimiter:
    """In-process token bucket.

    The service runs as a single event loop, so one limiter instance shared
    by every search backend call is enough to stay under the provider quota.
    """

    def __init__(self, rate: float, capacity: int) -> None:
        self._rate = rate  # tokens per second
        self._capacity = capacity
        self._tokens = float(capacity)
        self._last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    @classmethod
    def per_minute(cls, calls_per_minute: int) -> TokenBucketRateLimiter:
        calls = max(calls_per_minute, 1)
        return cls(rate=calls / 60.0, capacity=calls)

    async def acquire(self) -> None:
        """Wait until a token is available, then consume it."""
        async with self._lock:
            self._refill()
            if self._tokens < 1.0:
                wait = (1.0 - self._tokens) / self._rate
                logger.debug("rate_limit_wait", wait_seconds=round(wait, 2))
                await asyncio.sleep(wait)
                self._refill()
            self._tokens -= 1.0

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._last_refill = now
