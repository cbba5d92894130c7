import asyncio

import pytest

from banreview.scheduler.concurrency_pool import ConcurrencyPool
from fakes import instant_rate_limiter


async def settle() -> None:
    for _ in range(20):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_never_exceeds_concurrency_ceiling() -> None:
    pool: ConcurrencyPool[int, int] = ConcurrencyPool(20, instant_rate_limiter())
    saturated = asyncio.Event()
    in_flight = 0
    peak = 0

    async def handler(item: int) -> int:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        if in_flight == 20:
            saturated.set()
        # Nobody finishes until the pool is full, so the ceiling is actually reached.
        await saturated.wait()
        await asyncio.sleep(0)
        in_flight -= 1
        return item * 2

    results = await pool.run(list(range(50)), handler)

    assert peak <= 20
    assert peak == 20
    assert results == [item * 2 for item in range(50)]


@pytest.mark.asyncio
async def test_results_follow_submission_order_not_completion() -> None:
    pool: ConcurrencyPool[int, str] = ConcurrencyPool(5, instant_rate_limiter())

    async def handler(item: int) -> str:
        await asyncio.sleep(0.001 * (5 - item))
        return f"r{item}"

    assert await pool.run([0, 1, 2, 3, 4], handler) == ["r0", "r1", "r2", "r3", "r4"]


@pytest.mark.asyncio
async def test_admission_resumes_on_first_completion() -> None:
    pool: ConcurrencyPool[str, str] = ConcurrencyPool(2, instant_rate_limiter())
    gates = {name: asyncio.Event() for name in ("a", "b", "c")}
    started: list[str] = []

    async def handler(name: str) -> str:
        started.append(name)
        await gates[name].wait()
        return name

    run = asyncio.create_task(pool.run(["a", "b", "c"], handler))
    await settle()
    assert started == ["a", "b"]

    gates["b"].set()
    await settle()
    assert started == ["a", "b", "c"]

    gates["a"].set()
    gates["c"].set()
    assert await run == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_empty_input_returns_empty_list() -> None:
    pool: ConcurrencyPool[int, int] = ConcurrencyPool(3, instant_rate_limiter())

    async def handler(item: int) -> int:
        return item

    assert await pool.run([], handler) == []


@pytest.mark.asyncio
async def test_handler_failure_propagates() -> None:
    pool: ConcurrencyPool[int, int] = ConcurrencyPool(2, instant_rate_limiter())

    async def handler(item: int) -> int:
        if item == 1:
            raise RuntimeError("boom")
        return item

    with pytest.raises(RuntimeError):
        await pool.run([0, 1, 2], handler)


def test_limit_below_one_rejected() -> None:
    with pytest.raises(ValueError):
        ConcurrencyPool(0, instant_rate_limiter())
