"""Async helpers for bounded fan-out and blocking calls."""

import asyncio
import functools
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


async def gather_with_limit(
    *coros: Awaitable[T],
    limit: int = 10,
    return_exceptions: bool = False,
) -> list[T | BaseException]:
    """Run coroutines concurrently with a concurrency limit.

    All coroutines run to completion; with ``return_exceptions`` a failure
    is returned in place of its result and does not cancel its siblings.

    Args:
        *coros: Coroutines to run
        limit: Maximum concurrent coroutines
        return_exceptions: Return exceptions instead of raising

    Returns:
        List of results in order

    Example:
        results = await gather_with_limit(
            ping(a), ping(b), ping(c),
            limit=2,
            return_exceptions=True,
        )
    """
    semaphore = asyncio.Semaphore(limit)

    async def bounded(coro: Awaitable[T]) -> T:
        async with semaphore:
            return await coro

    return await asyncio.gather(
        *[bounded(c) for c in coros],
        return_exceptions=return_exceptions,
    )


async def run_in_executor(
    func: Callable[..., T],
    *args: Any,
    **kwargs: Any,
) -> T:
    """Run a sync function in the default executor.

    Args:
        func: Sync function to run
        *args: Positional arguments
        **kwargs: Keyword arguments

    Returns:
        Function result
    """
    loop = asyncio.get_running_loop()
    if kwargs:
        func = functools.partial(func, **kwargs)
    return await loop.run_in_executor(None, func, *args)
