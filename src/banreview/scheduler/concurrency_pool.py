"""
Bounded concurrency pool for per-user evaluation tasks.

Tasks are admitted one at a time with a small randomised pause between
admissions. Once ``limit`` tasks are in flight, admission blocks until any of
them finishes. Results come back in submission order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Generic, List, Set, TypeVar

from banreview.scheduler.rate_limiter import RateLimiter
from banreview.util.logger import get_logger

logger = get_logger("concurrency_pool")

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


class ConcurrencyPool(Generic[ItemT, ResultT]):
    """Run an async handler over many items with a hard in-flight ceiling."""

    def __init__(
        self,
        limit: int,
        rate_limiter: RateLimiter,
        *,
        admission_delay: float = 0.001,
    ) -> None:
        if limit < 1:
            raise ValueError("concurrency limit must be at least 1")
        self.limit = limit
        self.rate_limiter = rate_limiter
        self.admission_delay = admission_delay

    async def run(
        self,
        items: Sequence[ItemT],
        handler: Callable[[ItemT], Awaitable[ResultT]],
        label: Callable[[ItemT], str] = str,
    ) -> List[ResultT]:
        """Evaluate ``handler`` for every item and return results in item order.

        Parameters
        ----------
        items:
            Work items, admitted in this order.
        handler:
            Coroutine function run once per item.
        label:
            Produces the name used in start/finish log lines.
        """
        tasks: List[asyncio.Task[ResultT]] = []
        executing: Set[asyncio.Task[ResultT]] = set()

        for item in items:
            await self.rate_limiter.wait(self.admission_delay)

            name = label(item)
            task = asyncio.create_task(self._tracked(handler, item, name), name=f"banreview-eval-{name}")
            logger.info("Starting: %s", name)
            tasks.append(task)
            executing.add(task)
            task.add_done_callback(executing.discard)

            if len(executing) >= self.limit:
                await asyncio.wait(set(executing), return_when=asyncio.FIRST_COMPLETED)

        return list(await asyncio.gather(*tasks))

    async def _tracked(
        self,
        handler: Callable[[ItemT], Awaitable[ResultT]],
        item: ItemT,
        name: str,
    ) -> ResultT:
        try:
            result = await handler(item)
        except Exception as exc:
            logger.error("Failed: %s (%s)", name, exc)
            raise
        logger.info("Done: %s", name)
        return result
