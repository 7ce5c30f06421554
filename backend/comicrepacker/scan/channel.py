"""Single-consumer event channel between engine worker threads and the event loop."""
import asyncio
import logging
from typing import Optional

from comicrepacker.scan.models import ScanEvent

logger = logging.getLogger("comicrepacker.channel")


class EventChannel:
    """asyncio.Queue drained by one consumer on the loop that owns the session state.

    Worker threads publish with publish_threadsafe(); the put is marshalled onto the
    loop so arrival order on the queue is the order the producer emitted."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue()

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """Attach to the loop that will drain the channel. Pending events are kept."""
        self._loop = loop

    @property
    def queue(self) -> asyncio.Queue:
        return self._queue

    def publish(self, event: ScanEvent) -> None:
        """Publish from code already running on the owning loop."""
        self.queue.put_nowait(event)

    def publish_threadsafe(self, event: ScanEvent) -> None:
        """Publish from an engine worker thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.warning("Dropping %s: channel has no running loop", type(event).__name__)
            return
        loop.call_soon_threadsafe(self.queue.put_nowait, event)

    async def get(self) -> ScanEvent:
        return await self.queue.get()

    def get_nowait(self) -> Optional[ScanEvent]:
        try:
            return self.queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def pending(self) -> int:
        return self.queue.qsize()
