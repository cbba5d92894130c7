"""Randomised delays used before every externally observable browser action."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable

SleepFunc = Callable[[float], Awaitable[None]]


class RateLimiter:
    """Sleep for ``base`` plus a random jitter in ``[jitter_min, jitter_max]`` seconds."""

    def __init__(
        self,
        jitter_min: float = 0.020,
        jitter_max: float = 0.050,
        *,
        sleep: SleepFunc = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        if jitter_min < 0 or jitter_max < jitter_min:
            raise ValueError("jitter bounds must satisfy 0 <= jitter_min <= jitter_max")
        self.jitter_min = jitter_min
        self.jitter_max = jitter_max
        self._sleep = sleep
        self._rng = rng or random.Random()

    def next_delay(self, base: float) -> float:
        return max(base, 0.0) + self._rng.uniform(self.jitter_min, self.jitter_max)

    async def wait(self, base: float = 0.0) -> None:
        await self._sleep(self.next_delay(base))
