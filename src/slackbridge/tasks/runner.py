"""In-process async task runner."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class TaskRunner:
    """Fire-and-forget dispatcher for event processing after the HTTP ack.

    Tasks are not throttled: a handler must be able to reach its ack
    immediately, so nothing may sit between ``spawn`` and the first await.
    """

    def __init__(self) -> None:
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._shutdown = asyncio.Event()

    @property
    def in_flight(self) -> int:
        return len(self._background_tasks)

    @property
    def is_shutting_down(self) -> bool:
        return self._shutdown.is_set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any] | None:
        if self._shutdown.is_set():
            logger.warning("Task runner is shutting down; skipping task %s", name)
            coro.close()
            return None
        task = asyncio.get_running_loop().create_task(self._execute(name, coro), name=name)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def shutdown(self, timeout_s: float) -> None:
        self._shutdown.set()
        if not self._background_tasks:
            return
        try:
            await asyncio.wait_for(
                asyncio.gather(*list(self._background_tasks), return_exceptions=True),
                timeout=max(1.0, float(timeout_s)),
            )
        except TimeoutError:
            logger.warning(
                "Task runner shutdown timed out; cancelling %d tasks",
                len(self._background_tasks),
            )
            for task in list(self._background_tasks):
                task.cancel()

    async def _execute(self, name: str, coro: Coroutine[Any, Any, Any]) -> Any:
        try:
            return await coro
        except Exception:
            logger.exception("Task failed: %s", name)
            return None
