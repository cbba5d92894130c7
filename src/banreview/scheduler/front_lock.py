"""front_lock.py
===============

Exclusive lock over the single visible browser tab.

Every evaluation task shares one headful browser window. Creating a page or
operating the moderation-log filter widget requires bringing a tab to the
front, so those sequences must not interleave. Waiters are served strictly in
arrival order.
"""
from __future__ import annotations

import asyncio
from collections import deque
from types import TracebackType
from typing import Deque, Optional, Type


class FrontSurfaceLock:
    """FIFO mutex with explicit ownership hand-off."""

    def __init__(self) -> None:
        self._held: bool = False
        self._waiters: Deque[asyncio.Future[None]] = deque()

    def locked(self) -> bool:
        return self._held

    @property
    def waiting(self) -> int:
        """Number of callers currently queued behind the holder."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def acquire(self) -> None:
        """Wait until the caller is the sole holder of the front surface."""
        if not self._held and not self._waiters:
            self._held = True
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Ownership was handed over just before cancellation.
                self.release()
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise

    def release(self) -> None:
        """Hand ownership to the next waiter, or unlock when nobody waits."""
        if not self._held:
            raise RuntimeError("FrontSurfaceLock released while not held")

        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return

        self._held = False

    async def __aenter__(self) -> FrontSurfaceLock:
        await self.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()
