"""Per-host request pacing."""
import asyncio
import logging
import time
from collections import defaultdict
from typing import Dict

from pricewatch.parse.normalize import hostname_key

logger = logging.getLogger(__name__)


class RateLimiter:
    """Spaces requests to the same host at least ``1 / rate_per_second`` apart."""

    def __init__(self, rate_per_second: float):
        self.rate_per_second = rate_per_second
        self.min_interval = 1.0 / rate_per_second if rate_per_second > 0 else 0
        self._last_request: Dict[str, float] = defaultdict(lambda: float("-inf"))
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def acquire(self, url: str) -> None:
        """Wait if necessary to respect the per-host rate."""
        if not self.min_interval:
            return
        host = hostname_key(url)
        async with self._locks[host]:
            elapsed = time.monotonic() - self._last_request[host]
            if elapsed < self.min_interval:
                wait_time = self.min_interval - elapsed
                logger.debug(f"Rate limit: waiting {wait_time:.2f}s for {host}")
                await asyncio.sleep(wait_time)
            self._last_request[host] = time.monotonic()
