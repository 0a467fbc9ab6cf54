"""Sliding window throttling for the signup and signin endpoints."""

from __future__ import annotations

import logging
import time
from collections import deque
from threading import Lock
from typing import Callable, Deque, Protocol

from ..config import Settings

logger = logging.getLogger(__name__)


class RateLimiter(Protocol):
    def allow(self, key: str) -> bool: ...


class SlidingWindowRateLimiter:
    """Thread-safe in-process sliding window limiter.

    Keys whose newest attempt has left the window are swept at most once per
    window, so caller-chosen keys (signin handles) cannot accumulate forever.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._events: dict[str, Deque[float]] = {}
        self._last_sweep = clock()
        self._lock = Lock()

    def allow(self, key: str) -> bool:
        """Record an attempt for ``key`` and report whether it fits the window."""
        now = self._clock()
        cutoff = now - self._window
        with self._lock:
            if now - self._last_sweep >= self._window:
                self._sweep(cutoff)
                self._last_sweep = now
            attempts = self._events.setdefault(key, deque())
            while attempts and attempts[0] <= cutoff:
                attempts.popleft()
            if len(attempts) >= self._max_requests:
                return False
            attempts.append(now)
            return True

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._events)

    def reset(self) -> None:
        with self._lock:
            self._events.clear()

    def _sweep(self, cutoff: float) -> None:
        stale = [key for key, attempts in self._events.items() if not attempts or attempts[-1] <= cutoff]
        for key in stale:
            del self._events[key]


def build_rate_limiter(settings: Settings) -> RateLimiter:
    """Instantiate the configured backend, preferring Redis when it answers a ping."""
    if settings.rate_limit_backend == "redis" and settings.redis_url:
        import redis

        from .redis_rate_limiter import RedisSlidingWindowRateLimiter

        client = redis.Redis.from_url(settings.redis_url)
        try:
            client.ping()
        except redis.RedisError as exc:
            logger.warning("redis rate limiter unavailable, falling back to in-memory: %s", exc)
        else:
            logger.info("rate limiter configured for redis backend")
            return RedisSlidingWindowRateLimiter(
                client,
                max_requests=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )

    logger.info("rate limiter using in-memory backend")
    return SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
