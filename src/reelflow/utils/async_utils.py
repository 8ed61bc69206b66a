"""Async utilities for running coroutines in sync contexts."""

import asyncio
from collections.abc import Awaitable, Coroutine
from typing import Any, TypeVar

from reelflow.errors import AdapterTimeoutError

T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine in a sync context.

    Reuses the current event loop if available, otherwise creates a new one.
    The loop is NOT closed after use because httpx caches clients bound to a
    specific loop; closing it between sequential calls within the same Celery
    task causes "Event loop is closed" errors.

    Args:
        coro: The coroutine to execute.

    Returns:
        The result of the coroutine.
    """
    try:
        loop = asyncio.get_event_loop()
        if loop.is_closed():
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


async def with_deadline(awaitable: Awaitable[T], seconds: float, operation: str = "adapter call") -> T:
    """Await an external call, failing with AdapterTimeoutError past a hard deadline."""
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except TimeoutError as e:
        raise AdapterTimeoutError(f"{operation} exceeded {seconds:g}s deadline") from e
