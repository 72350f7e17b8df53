"""
Asyncio helpers for fan-out/fan-in with cancellation.

asyncio.gather leaves sibling tasks running when one of them fails. The
helpers here cancel and await every outstanding task before returning, so an
aborted comparison never leaves requests in flight.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

from doc_similarity.exceptions import ComparisonCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def check_cancelled(cancel_event: asyncio.Event | None) -> None:
    """Raise ComparisonCancelled if the caller has set the cancel event."""
    if cancel_event is not None and cancel_event.is_set():
        raise ComparisonCancelled()


async def _cancel_and_wait(tasks: Iterable[asyncio.Future]) -> None:
    pending = [task for task in tasks if not task.done()]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)


async def gather_cancelling(*aws: Awaitable[Any]) -> list[Any]:
    """
    Run awaitables concurrently and return their results in order.

    On the first failure (or if the caller is cancelled) every other
    awaitable is cancelled and awaited before the error propagates.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    finally:
        await _cancel_and_wait(tasks)


async def gather_bounded(
    func: Callable[[T], Awaitable[R]],
    items: Iterable[T],
    limit: int | None = None,
    semaphore: asyncio.Semaphore | None = None,
) -> list[R]:
    """
    Apply an async function to every item with at most `limit` running at once.

    Args:
        func: Coroutine function to call per item
        items: Inputs, results come back in the same order
        limit: Maximum concurrent calls (ignored when semaphore is given)
        semaphore: Shared semaphore, for a cap spanning several fan-outs

    Returns:
        List of results
    """
    if semaphore is None:
        if limit is None or limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        semaphore = asyncio.Semaphore(limit)

    async def run(item: T) -> R:
        async with semaphore:
            return await func(item)

    return await gather_cancelling(*(run(item) for item in items))


async def run_cancellable(
    aw: Awaitable[T],
    cancel_event: asyncio.Event | None = None,
    timeout: float | None = None,
) -> T:
    """
    Await one external call, honoring a cancel event and a timeout.

    Raises:
        ComparisonCancelled: If the cancel event is set first
        asyncio.TimeoutError: If the timeout expires first
    """
    if cancel_event is not None and cancel_event.is_set():
        if asyncio.iscoroutine(aw):
            aw.close()
        raise ComparisonCancelled()

    task = asyncio.ensure_future(aw)
    waiter = asyncio.ensure_future(cancel_event.wait()) if cancel_event is not None else None
    waiting = {task, waiter} if waiter is not None else {task}

    try:
        done, _ = await asyncio.wait(waiting, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    except BaseException:
        await _cancel_and_wait(waiting)
        raise

    if waiter is not None:
        await _cancel_and_wait([waiter])

    if task in done:
        return task.result()

    await _cancel_and_wait([task])
    if waiter is not None and waiter in done:
        raise ComparisonCancelled()
    raise asyncio.TimeoutError(f"Timed out after {timeout}s")
