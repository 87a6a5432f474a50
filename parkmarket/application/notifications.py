import asyncio
from typing import Any, Awaitable, Callable, Optional, Set

from loguru import logger

# (event, payload) -> awaitable; delivery itself lives outside the core
Notifier = Callable[[str, dict], Awaitable[Any]]


class NotificationDispatcher:
    """Runs notifier calls as background tasks once a transaction has committed.

    A failing notifier is logged and never reaches the caller.
    """

    def __init__(self, notifier: Optional[Notifier] = None):
        self.notifier = notifier
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, event: str, **payload) -> Optional[asyncio.Task]:
        if self.notifier is None:
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; dropping notification '{event}'")
            return None

        task = loop.create_task(self._deliver(event, payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver(self, event: str, payload: dict):
        try:
            await self.notifier(event, payload)
            logger.debug(f"Notification '{event}' delivered")
        except Exception:
            logger.exception(f"Notification '{event}' failed")

    async def drain(self):
        """Wait for every pending notification."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))
