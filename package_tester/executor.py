"""Bounded-concurrency execution of one async operation over many items."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def default_concurrency() -> int:
    """Concurrency used when none is given: one worker per available CPU."""
    return os.cpu_count() or 1


async def n_at_a_time(n: int, items: Sequence[T], operation: Callable[[T], Awaitable[R]]) -> List[R]:
    """Run ``operation`` over every item with at most ``n`` in flight.

    ``n`` workers pull items from a shared iterator, so no more than ``n``
    operations are ever pending. Results come back in input order; completion
    order is unspecified.

    Args:
        n: Maximum number of concurrently active operations (>= 1).
        items: Items to process.
        operation: Coroutine function applied to each item.

    Returns:
        One result per item, in the order of ``items``.

    Raises:
        ValueError: If ``n`` is less than 1.
        Exception: The first exception raised by ``operation``; the remaining
            workers are cancelled before it propagates.
    """
    if n < 1:
        raise ValueError(f"Concurrency must be at least 1, got {n}")
    items = list(items)
    if not items:
        return []

    results: List[Optional[R]] = [None] * len(items)
    indices = iter(range(len(items)))

    async def worker() -> None:
        for index in indices:
            results[index] = await operation(items[index])

    workers = [asyncio.create_task(worker()) for _ in range(min(n, len(items)))]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise
    return results  # type: ignore[return-value]


class BoundedExecutor:
    """Reusable executor bound to a fixed concurrency cap."""

    def __init__(self, n_processes: Optional[int] = None) -> None:
        self.n_processes = n_processes if n_processes is not None else default_concurrency()
        if self.n_processes < 1:
            raise ValueError(f"Concurrency must be at least 1, got {self.n_processes}")

    async def map(self, items: Sequence[T], operation: Callable[[T], Awaitable[R]]) -> List[R]:
        logger.debug(f"Running {len(items)} tasks, {self.n_processes} at a time")
        return await n_at_a_time(self.n_processes, items, operation)
