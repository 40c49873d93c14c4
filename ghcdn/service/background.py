"""Fire-and-forget refreshes that never affect the request that started them."""

import asyncio
import logging
from typing import Awaitable

logger = logging.getLogger(__name__)


class BackgroundRefresher:
    """Holds background refresh tasks until they finish; failures are logged."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def submit(self, cache_key: str, refresh: Awaitable) -> asyncio.Task:
        task = asyncio.create_task(self._run(cache_key, refresh))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, cache_key: str, refresh: Awaitable) -> None:
        try:
            await refresh
        except Exception:
            logger.exception(f"Background refresh of {cache_key} failed")
        else:
            logger.debug(f"Background refresh of {cache_key} done")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for all submitted refreshes."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
