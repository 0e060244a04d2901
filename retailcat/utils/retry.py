"""Retry policy shared by every retailer request."""

from __future__ import annotations

import asyncio
import functools
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

RETRY_EXCEPTIONS = (OSError, asyncio.TimeoutError, httpx.TransportError)
RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Attempts and exponential backoff for one call site."""

    attempts: int = 3
    base_delay: float = 1.0
    factor: float = 2.0
    max_delay: float = 30.0
    jitter: float = 1.0
    retry_statuses: frozenset[int] = RETRY_STATUSES

    def backoff(self, attempt: int) -> float:
        delay = min(self.base_delay * self.factor**attempt, self.max_delay)
        return delay + random.random() * self.jitter

    def delay_for(self, response: httpx.Response, attempt: int) -> float:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return min(float(retry_after), self.max_delay)
            except ValueError:
                logger.debug("Ignoring non-numeric Retry-After %r", retry_after)
        return self.backoff(attempt)


NO_RETRY = RetryPolicy(attempts=1)


def retry_async(func: Callable[..., Awaitable], policy: RetryPolicy | None = None):
    """Wrap ``func`` so transport errors and retryable statuses are retried.

    The final response is returned even when its status is retryable; callers
    decide whether to raise on it.
    """
    policy = policy or RetryPolicy()
    attempts = max(policy.attempts, 1)

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        for attempt in range(attempts):
            last = attempt == attempts - 1
            try:
                response = await func(*args, **kwargs)
            except RETRY_EXCEPTIONS as exc:
                if last:
                    raise
                delay = policy.backoff(attempt)
                logger.warning("Request failed (%s); retry %s/%s in %.1fs", exc, attempt + 1, attempts - 1, delay)
                await asyncio.sleep(delay)
                continue
            status = getattr(response, "status_code", None)
            if status in policy.retry_statuses and not last:
                delay = policy.delay_for(response, attempt)
                logger.warning("HTTP %s from %s; retry %s/%s in %.1fs", status, response.url, attempt + 1, attempts - 1, delay)
                await asyncio.sleep(delay)
                continue
            return response

    return wrapper
