"""Per-host courtesy delays."""

from __future__ import annotations

import asyncio
import random
import time
from collections import defaultdict


class RateLimiter:
    """Keeps at least ``interval`` seconds between requests to the same host."""

    def __init__(self, *, interval: float = 1.0, jitter: float = 0.0) -> None:
        self.interval = interval
        self.jitter = jitter
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._last_request: dict[str, float] = defaultdict(lambda: float("-inf"))

    async def wait_for_host(self, host: str) -> None:
        lock = self._locks[host]
        async with lock:
            elapsed = time.monotonic() - self._last_request[host]
            min_interval = self.interval + (random.random() * self.jitter if self.jitter else 0.0)
            if elapsed < min_interval:
                await asyncio.sleep(min_interval - elapsed)
            self._last_request[host] = time.monotonic()


async def pause(seconds: float) -> None:
    if seconds > 0:
        await asyncio.sleep(seconds)
