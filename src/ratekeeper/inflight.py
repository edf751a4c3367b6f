"""Coalescing of concurrent fetches for the same key."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class InFlightRegistry:
    """
    Tracks at most one outstanding fetch per key.

    ``join`` checks and registers without awaiting, so under asyncio no other
    caller can slip in between. The entry is dropped inside the task before
    its result is set: by the time any waiter resumes, a new call for the
    same key starts a new fetch.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    def __len__(self) -> int:
        return len(self._tasks)

    def pending(self, key: str) -> bool:
        return key in self._tasks

    def join(self, key: str, start_fn: Callable[[], Awaitable[Any]]) -> Awaitable[Any]:
        """
        Share the outstanding fetch for ``key`` or start one.

        Args:
            key: Pair key
            start_fn: Zero-argument callable returning the fetch awaitable

        Returns:
            An awaitable of the shared result. Cancelling it does not cancel
            the fetch other callers are waiting on.
        """
        task = self._tasks.get(key)
        if task is not None:
            logger.debug("Joining in-flight fetch for %s", key)
            return asyncio.shield(task)

        task = asyncio.ensure_future(self._run(key, start_fn))
        self._tasks[key] = task
        return asyncio.shield(task)

    async def _run(self, key: str, start_fn: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await start_fn()
        finally:
            self._tasks.pop(key, None)
