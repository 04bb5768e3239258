"""At-most-one-in-flight guard for the poll loop and each sink."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any


class SingleFlight:
    """Runs at most one task at a time and keeps its handle for shutdown."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._task: asyncio.Task[Any] | None = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def try_start(self, factory: Callable[[], Coroutine[Any, Any, Any]]) -> asyncio.Task[Any] | None:
        """Schedule ``factory()`` unless a previous run is still going.

        *factory* is only called when the guard is free, so no coroutine is
        created (and leaked) for a dropped tick.
        """
        if self.busy:
            return None
        task = asyncio.create_task(factory(), name=self.name)
        self._task = task
        return task

    async def join(self) -> None:
        task = self._task
        if task is None:
            return
        await asyncio.gather(task, return_exceptions=True)

    async def cancel(self) -> None:
        task = self._task
        if task is None:
            return
        if not task.done():
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        self._task = None
