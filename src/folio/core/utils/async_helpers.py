"""Async utilities: deadline-bounded hook calls and running coroutines from sync code."""

from __future__ import annotations

import asyncio
import inspect
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from folio.core.exceptions import PluginTimeoutError


@dataclass(frozen=True)
class Deadline:
    """An absolute point in time by which a hook must settle.

    Threaded into plugin calls so hooks can check ``remaining()`` and bail out
    cooperatively; the pipeline enforces it regardless.
    """

    timeout: float
    started_at: float = field(default_factory=time.monotonic)

    @property
    def expires_at(self) -> float:
        return self.started_at + self.timeout

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at


def _consume_late_result(task: asyncio.Future) -> None:
    # Retrieve the outcome so asyncio doesn't warn about an unretrieved exception.
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Discarded late hook failure: {exc!r}")


async def race(result: Any, deadline: Deadline, *, label: str = "hook", plugin_name: str = "") -> Any:
    """Race an awaitable against *deadline*.

    *result* is whatever the hook returned: plain values pass straight
    through, awaitables are wrapped in a task and bounded with
    ``asyncio.wait``. On expiry the task is cancelled but never awaited, so a
    hook that ignores cancellation cannot stall the caller; its eventual result
    is discarded.

    Raises:
        PluginTimeoutError: the awaitable did not settle in time.
    """
    if not inspect.isawaitable(result):
        return result

    task = asyncio.ensure_future(result)
    done, _ = await asyncio.wait({task}, timeout=deadline.remaining())
    if task in done:
        return task.result()

    task.cancel()
    task.add_done_callback(_consume_late_result)
    raise PluginTimeoutError(
        f"{label} timed out after {deadline.timeout:g}s",
        plugin_name=plugin_name,
    )


def run_async_safely(coro):
    """
    Run an async coroutine from a sync context.

    If no event loop is running, uses asyncio.run() directly.
    If one is already running (e.g. inside a web app or Jupyter), dispatches
    to a thread pool to avoid "cannot run nested event loop" errors.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        with ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(asyncio.run, coro)
            return future.result()
    else:
        return asyncio.run(coro)
