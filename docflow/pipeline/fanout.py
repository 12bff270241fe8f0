"""Bounded per-attachment fan-out with a fan-in barrier.

Blocking engine calls run on a private thread pool so that a call which
outlives its budget does not delay the caller: the pool is shut down without
waiting once every item has either finished or fallen back.
"""

import asyncio
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from docflow.pipeline.exceptions import ExternalEngineError

T = TypeVar("T")
R = TypeVar("R")


def fan_out(
    items: Sequence[T],
    func: Callable[[T], R],
    *,
    on_error: Callable[[T, Exception], R],
    limit: int,
    timeout: float | None = None,
) -> list[R]:
    """Apply ``func`` to every item concurrently and return results in order.

    At most ``limit`` items hold an active budget at once. An item that raises
    or exceeds ``timeout`` seconds is replaced by ``on_error(item, exc)``; the
    remaining items are unaffected.
    """
    if not items:
        return []
    # One thread per item: a timed-out call keeps its thread, so a shared,
    # smaller pool would start later items' budgets while they still queue.
    executor = ThreadPoolExecutor(
        max_workers=len(items), thread_name_prefix="docflow-fanout"
    )
    try:
        return asyncio.run(_gather(items, func, on_error, limit, timeout, executor))
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


async def _gather(
    items: Sequence[T],
    func: Callable[[T], R],
    on_error: Callable[[T, Exception], R],
    limit: int,
    timeout: float | None,
    executor: ThreadPoolExecutor,
) -> list[R]:
    semaphore = asyncio.Semaphore(limit)
    tasks = [
        _run_one(item, func, on_error, semaphore, timeout, executor) for item in items
    ]
    return list(await asyncio.gather(*tasks))


async def _run_one(
    item: T,
    func: Callable[[T], R],
    on_error: Callable[[T, Exception], R],
    semaphore: asyncio.Semaphore,
    timeout: float | None,
    executor: ThreadPoolExecutor,
) -> R:
    loop = asyncio.get_running_loop()
    async with semaphore:
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(executor, func, item),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            return on_error(
                item, ExternalEngineError(f"timed out after {timeout:g}s")
            )
        except Exception as exc:
            return on_error(item, exc)
