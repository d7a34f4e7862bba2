import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


def scope(items: Sequence[T], limit: int) -> list[T]:
    """First ``limit`` items, in their existing order."""
    return list(items[: max(0, limit)])


async def bounded_gather(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    *,
    limit: int = 1,
) -> list[R]:
    """Run ``worker`` over ``items`` with at most ``limit`` calls in flight.

    Results come back in input order regardless of completion order. With
    ``limit=1`` items are processed strictly one after another and the first
    failure stops the remaining work.
    """
    if limit <= 1:
        return [await worker(item) for item in items]

    sem = asyncio.Semaphore(limit)

    async def _run(item: T) -> R:
        async with sem:
            return await worker(item)

    tasks = [asyncio.create_task(_run(item)) for item in items]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
