import asyncio

import pytest

from banreview.scheduler.front_lock import FrontSurfaceLock


@pytest.mark.asyncio
async def test_acquire_free_lock_is_immediate() -> None:
    lock = FrontSurfaceLock()

    await lock.acquire()

    assert lock.locked() is True
    lock.release()
    assert lock.locked() is False


@pytest.mark.asyncio
async def test_release_without_holder_raises() -> None:
    lock = FrontSurfaceLock()

    with pytest.raises(RuntimeError):
        lock.release()


@pytest.mark.asyncio
async def test_waiters_are_served_in_arrival_order() -> None:
    lock = FrontSurfaceLock()
    order: list[int] = []

    await lock.acquire()

    async def worker(index: int) -> None:
        async with lock:
            order.append(index)
            await asyncio.sleep(0)

    tasks = [asyncio.create_task(worker(i)) for i in range(5)]
    # Let every worker queue up behind the holder.
    for _ in range(3):
        await asyncio.sleep(0)
    assert lock.waiting == 5

    lock.release()
    await asyncio.gather(*tasks)

    assert order == [0, 1, 2, 3, 4]
    assert lock.locked() is False


@pytest.mark.asyncio
async def test_at_most_one_holder_at_a_time() -> None:
    lock = FrontSurfaceLock()
    holders = 0
    peak = 0

    async def worker() -> None:
        nonlocal holders, peak
        async with lock:
            holders += 1
            peak = max(peak, holders)
            await asyncio.sleep(0.001)
            holders -= 1

    await asyncio.gather(*(worker() for _ in range(10)))

    assert peak == 1


@pytest.mark.asyncio
async def test_cancelled_waiter_is_skipped() -> None:
    lock = FrontSurfaceLock()
    await lock.acquire()

    cancelled = asyncio.create_task(lock.acquire())
    survivor = asyncio.create_task(lock.acquire())
    await asyncio.sleep(0)

    cancelled.cancel()
    with pytest.raises(asyncio.CancelledError):
        await cancelled

    lock.release()
    await asyncio.wait_for(survivor, timeout=1)

    assert lock.locked() is True
    lock.release()
    assert lock.locked() is False
