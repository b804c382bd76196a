"""
Token bucket rate limiting for the whole application.

The bucket starts full and gains `quantum` tokens every `fill_interval`
seconds, never exceeding `capacity`. Every request takes one token or is
rejected with 429.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)


class TokenBucket:
    """Tick-based token bucket, safe to share between threads."""

    def __init__(
        self,
        fill_interval: float,
        capacity: int,
        quantum: int = 1,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if fill_interval <= 0:
            raise ValueError("fill_interval must be positive")
        if capacity <= 0 or quantum <= 0:
            raise ValueError("capacity and quantum must be positive")
        self.fill_interval = fill_interval
        self.capacity = capacity
        self.quantum = quantum
        self._clock = clock
        self._start = clock()
        self._latest_tick = 0
        self._available = capacity
        self._lock = threading.Lock()

    def _adjust(self, now: float) -> None:
        tick = int((now - self._start) / self.fill_interval)
        if self._available < self.capacity:
            self._available = min(self.capacity, self._available + (tick - self._latest_tick) * self.quantum)
        self._latest_tick = tick

    def take_available(self, count: int = 1) -> int:
        """Take up to `count` tokens without waiting. Returns how many were taken."""
        if count <= 0:
            return 0
        with self._lock:
            self._adjust(self._clock())
            taken = min(count, self._available)
            if taken <= 0:
                return 0
            self._available -= taken
            return taken

    @property
    def available(self) -> int:
        with self._lock:
            self._adjust(self._clock())
            return self._available


class RateLimitMiddleware:
    """ASGI middleware: 429 when the bucket is empty."""

    def __init__(self, app: ASGIApp, bucket: TokenBucket) -> None:
        self.app = app
        self.bucket = bucket

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        if self.bucket.take_available(1) == 0:
            logger.debug("Rate limited %s %s", scope.get("method"), scope.get("path"))
            await Response(status_code=429)(scope, receive, send)
            return
        await self.app(scope, receive, send)
