"""
Rate Limiting

This module implements an in-memory sliding-window rate limiter and the
limiter instances shared by the middleware and the login/registration
routes.

Policy: at most `limit` events per rolling window, per key. Each key keeps
the timestamps of its admitted requests; on every check, timestamps older
than the window are discarded before counting. Rejected attempts are not
recorded, so a client that keeps hammering regains capacity as soon as its
oldest admitted request leaves the window.

Limitations:
- State lives in this process only. Restarts forget all counters, and
  several app instances behind a load balancer each keep their own counts.
- The shared dict is mutated without a lock. That is safe on the single
  asyncio event loop that serves requests; a multi-threaded server would
  need a mutex or an external counter store.
"""

import asyncio
import logging
import time
from typing import Callable, NamedTuple

from fastapi import HTTPException, Request, status
from slowapi.util import get_remote_address

from storefront.config import settings

logger = logging.getLogger(__name__)


class RateLimitResult(NamedTuple):
    success: bool
    remaining: int


class SlidingWindowLimiter:
    """
    Sliding-window counter keyed by client identifier (usually the IP).

    Args:
        limit: Maximum admitted requests per window
        window_seconds: Length of the rolling window
        clock: Monotonic time source, injectable for tests

    Example:
        limiter = SlidingWindowLimiter(limit=5, window_seconds=60)
        result = limiter.check("203.0.113.7")
        if not result.success:
            ...  # respond 429
    """

    def __init__(self, limit: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: dict[str, list[float]] = {}

    def check(self, key: str) -> RateLimitResult:
        now = self._clock()
        cutoff = now - self.window_seconds

        timestamps = self._requests.get(key)
        if timestamps is None:
            self._requests[key] = [now]
            return RateLimitResult(True, self.limit - 1)

        # Keep only timestamps inside the window
        timestamps = [t for t in timestamps if t > cutoff]
        self._requests[key] = timestamps

        if len(timestamps) >= self.limit:
            return RateLimitResult(False, 0)

        timestamps.append(now)
        return RateLimitResult(True, self.limit - len(timestamps))

    def sweep(self) -> int:
        """
        Drop keys with no timestamps left inside the window.

        Only bounds memory; check() already ignores stale timestamps.

        Returns:
            Number of keys removed
        """
        cutoff = self._clock() - self.window_seconds
        removed = 0
        for key in list(self._requests):
            timestamps = [t for t in self._requests[key] if t > cutoff]
            if timestamps:
                self._requests[key] = timestamps
            else:
                del self._requests[key]
                removed += 1
        return removed

    def reset(self):
        self._requests.clear()

    def __len__(self) -> int:
        return len(self._requests)


# Blanket limit for every /api/* request except payment webhooks
api_limiter = SlidingWindowLimiter(settings.API_RATE_LIMIT, settings.RATE_LIMIT_WINDOW_SECONDS)

# Credential endpoints get their own, stricter counters
admin_login_limiter = SlidingWindowLimiter(settings.AUTH_RATE_LIMIT, settings.RATE_LIMIT_WINDOW_SECONDS)
customer_login_limiter = SlidingWindowLimiter(settings.AUTH_RATE_LIMIT, settings.RATE_LIMIT_WINDOW_SECONDS)
customer_register_limiter = SlidingWindowLimiter(settings.AUTH_RATE_LIMIT, settings.RATE_LIMIT_WINDOW_SECONDS)

ALL_LIMITERS = (api_limiter, admin_login_limiter, customer_login_limiter, customer_register_limiter)


def client_key(request: Request) -> str:
    """
    Identify the client for rate limiting.

    Behind a proxy the first X-Forwarded-For entry is the original client;
    otherwise fall back to the socket peer address.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return get_remote_address(request)


def enforce_limit(limiter: SlidingWindowLimiter, request: Request) -> RateLimitResult:
    """
    Count one attempt for this client on a route-specific limiter.

    Raises:
        HTTPException: 429 with Retry-After when the window is full
    """
    result = limiter.check(client_key(request))
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Demasiados intentos. Espera un momento.",
            headers={"Retry-After": str(int(limiter.window_seconds))},
        )
    return result


async def run_sweeper(limiters=ALL_LIMITERS, interval: float = settings.RATE_LIMIT_SWEEP_SECONDS):
    """
    Periodically sweep idle keys out of every limiter.

    Started as a background task from the application lifespan and
    cancelled on shutdown.
    """
    while True:
        await asyncio.sleep(interval)
        removed = sum(limiter.sweep() for limiter in limiters)
        if removed:
            logger.debug(f"Rate limiter sweep removed {removed} idle keys")
