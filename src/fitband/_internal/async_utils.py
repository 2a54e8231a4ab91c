"""Asyncio utilities."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from typing import Any, Coroutine


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run an async coroutine from synchronous code (click command bodies)."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        import concurrent.futures

        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()
    else:
        return asyncio.run(coro)


async def maybe_await(value: Any) -> Any:
    """Await *value* if it is awaitable, otherwise return it unchanged.

    Lets subscriber callbacks be plain functions or coroutine functions.
    """
    if inspect.isawaitable(value):
        return await value
    return value


async def cancel_task(task: asyncio.Task[Any] | None) -> None:
    """Cancel *task* and wait for it to finish, swallowing the cancellation."""
    if task is None or task.done():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
