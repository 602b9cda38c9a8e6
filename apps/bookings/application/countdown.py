"""Local countdown shown while a hold warning is open."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class CountdownTimer:
    """
    Cancellable once-per-interval countdown

    Starting from `seconds`, calls `on_tick(n)` with n-1, n-2 ... 0, then
    stops. It only drives the display; reaching zero changes no state.

    Usage:
        async with CountdownTimer(30, render) as timer:
            await timer.wait()
    """

    def __init__(self, seconds: int, on_tick: Callable[[int], None], *,
                 interval: float = 1.0,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        if seconds < 0:
            raise ValueError("Countdown cannot start below zero")
        self.remaining = seconds
        self._on_tick = on_tick
        self._interval = interval
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def finished(self) -> bool:
        return self.remaining == 0

    def start(self) -> 'CountdownTimer':
        if self._task is not None:
            raise RuntimeError("Countdown already started")
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self

    def tick(self) -> int:
        """Advance by one step; no-op once at zero"""
        if self.remaining > 0:
            self.remaining -= 1
            try:
                self._on_tick(self.remaining)
            except Exception as e:
                logger.error(f"Countdown tick handler failed at {self.remaining}: {e}", exc_info=True)
        return self.remaining

    async def _run(self):
        while self.remaining > 0:
            await self._sleep(self._interval)
            self.tick()
        logger.debug("Countdown reached zero")

    def cancel(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self):
        """Wait until the countdown finished or was cancelled"""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    async def __aenter__(self):
        return self.start()

    async def __aexit__(self, exc_type, exc, tb):
        self.cancel()
        await self.wait()
