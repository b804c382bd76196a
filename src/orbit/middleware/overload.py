"""
Load shedding: a background monitor samples CPU and memory and flips one
flag; the middleware answers 503 while the flag is set.

The monitor task is the only writer of the flag. Request handlers only read
it, so a plain attribute assignment is enough.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging

import psutil
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)


class LoadMonitor:
    def __init__(
        self,
        max_cpu_percent: float,
        max_mem_percent: float,
        *,
        interval: float = 60.0,
        sample_window: float = 5.0,
    ) -> None:
        self.max_cpu_percent = max_cpu_percent
        self.max_mem_percent = max_mem_percent
        self.interval = interval
        self.sample_window = sample_window
        self._overloaded = False
        self._task: asyncio.Task[None] | None = None

    @property
    def overloaded(self) -> bool:
        return self._overloaded

    def sample(self) -> bool:
        """Blocking: average CPU over sample_window seconds, then virtual memory."""
        per_cpu = psutil.cpu_percent(interval=self.sample_window, percpu=True)
        if not per_cpu:
            logger.error("CPU sampling returned no data")
            return False
        if sum(per_cpu) / len(per_cpu) > self.max_cpu_percent:
            return True
        return psutil.virtual_memory().percent > self.max_mem_percent

    async def check(self) -> bool:
        """Take one sample and store the result. A failed sample counts as not overloaded."""
        try:
            overloaded = await asyncio.to_thread(self.sample)
        except Exception:
            logger.exception("Load sampling failed, treating load as unknown")
            overloaded = False
        if overloaded != self._overloaded:
            logger.warning("Overload flag changed to %s", overloaded)
        self._overloaded = overloaded
        return overloaded

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.check()

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run(), name="orbit-load-monitor")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


class OverloadMiddleware:
    """ASGI middleware: 503 while the monitor reports overload."""

    def __init__(self, app: ASGIApp, monitor: LoadMonitor) -> None:
        self.app = app
        self.monitor = monitor

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and self.monitor.overloaded:
            await Response(status_code=503)(scope, receive, send)
            return
        await self.app(scope, receive, send)
