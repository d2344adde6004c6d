"""Fire-and-forget notification side channel."""

import asyncio
from typing import Optional

from .logging import get_logger

logger = get_logger(__name__)


class NotificationWorker:
    """Drains queued messages on a background task.

    ``notify`` never blocks the caller; messages still queued at ``stop``
    are logged as dropped.
    """

    def __init__(self):
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self.processed = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            logger.warning("Notification worker already running, ignoring duplicate start")
            return
        self._task = asyncio.create_task(self._run(), name="notification-worker")
        logger.info("Notification worker started")

    def notify(self, message: str) -> None:
        """Queue a message. Call from the event loop thread."""
        self._queue.put_nowait(message)

    async def drain(self) -> None:
        """Wait until every queued message has been handled."""
        await self._queue.join()

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        if not self._queue.empty():
            logger.warning("Notification worker stopped with %d messages unprocessed", self._queue.qsize())
        logger.info("Notification worker stopped")

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                self.handle(message)
            except Exception as e:
                logger.error("Notification %r failed: %s", message, e)
            finally:
                self._queue.task_done()

    def handle(self, message: str) -> None:
        self.processed += 1
        logger.info("Background worker processed: %s", message)
