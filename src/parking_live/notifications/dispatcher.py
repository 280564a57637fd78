"""Background delivery of alert notifications."""

import asyncio
import logging
from typing import Optional, Protocol

from ..metrics import record_notification
from ..state.exceptions import NotificationFailure

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    def send(self, destination: str, subject: str, body: str) -> None: ...


class NotificationDispatcher:
    """
    Delivers notifications without blocking the caller.

    submit() queues a message for the worker task; send() delivers
    immediately and reports the outcome. Both run the blocking sender in a
    thread so the event loop is never held up by the mail server.
    """

    def __init__(self, sender: EmailSender, queue_size: int = 100):
        self.sender = sender
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def submit(self, destination: str, subject: str, body: str) -> None:
        """Queue a notification for background delivery (fire-and-forget)."""
        try:
            self._queue.put_nowait((destination, subject, body))
        except asyncio.QueueFull:
            record_notification("dropped")
            logger.warning(f"Notification queue full, dropping message to {destination}")

    async def send(self, destination: str, subject: str, body: str) -> bool:
        """
        Deliver a notification now.

        Returns:
            True if the sender accepted the message, False otherwise
        """
        try:
            await asyncio.to_thread(self.sender.send, destination, subject, body)
        except NotificationFailure as e:
            record_notification("failed")
            logger.error(f"Notification failed: {e}")
            return False

        record_notification("sent")
        return True

    async def run(self) -> None:
        """Worker loop; runs until cancelled."""
        logger.info("Notification worker started")

        while True:
            destination, subject, body = await self._queue.get()
            try:
                await self.send(destination, subject, body)
            except Exception as e:
                record_notification("failed")
                logger.error(f"Notification worker error: {e}")
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued notification has been processed."""
        await self._queue.join()

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
