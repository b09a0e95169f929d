"""Latest-wins execution for queries that supersede each other."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LatestOnly(Generic[T]):
    """Runs one query at a time; a newer run cancels the older one.

    A superseded run returns ``None`` instead of its result, so stale
    results never reach the caller's render target.
    """

    def __init__(self) -> None:
        self._generation = 0
        self._task: asyncio.Task[T] | None = None

    async def run(self, awaitable: Awaitable[T]) -> T | None:
        self._generation += 1
        generation = self._generation

        if self._task is not None and not self._task.done():
            self._task.cancel()

        task = asyncio.ensure_future(awaitable)
        self._task = task
        try:
            result = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if generation != self._generation and not (current and current.cancelling()):
                logger.debug("Discarded superseded query (generation %d)", generation)
                return None
            raise
        finally:
            if self._task is task and task.done():
                self._task = None

        if generation != self._generation:
            logger.debug("Discarded stale result (generation %d)", generation)
            return None
        return result
