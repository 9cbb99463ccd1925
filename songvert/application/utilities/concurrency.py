"""Bounded concurrent fan-out for per-track work.

Results come back in input order regardless of completion order, and one
failing coroutine never cancels its siblings.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence

from songvert.config import get_logger

logger = get_logger(__name__)


async def run_concurrently[T, R](
    items: Sequence[T],
    process_func: Callable[[T], Awaitable[R]],
    *,
    max_concurrency: int = 0,
) -> list[R | BaseException]:
    """Run ``process_func`` over ``items`` concurrently.

    Args:
        items: Work items
        process_func: Coroutine function applied to each item
        max_concurrency: Upper bound on in-flight calls; 0 means unbounded

    Returns:
        One entry per item, in input order: the result, or the exception raised
    """
    if not items:
        return []

    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency > 0 else None

    async def bounded(item: T) -> R:
        if semaphore is None:
            return await process_func(item)
        async with semaphore:
            return await process_func(item)

    logger.debug(
        "Fanning out work items",
        total_items=len(items),
        max_concurrency=max_concurrency,
    )

    # gather preserves argument order in its result list
    return await asyncio.gather(
        *[bounded(item) for item in items], return_exceptions=True
    )
