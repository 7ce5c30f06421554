"""Wires the session state, engines and controllers together."""
import asyncio
import logging
from typing import Optional

from comicrepacker.engines.repack import RepackEngine
from comicrepacker.engines.walker import DirectoryScanEngine
from comicrepacker.scan.channel import EventChannel
from comicrepacker.scan.coordinator import ConversionCoordinator
from comicrepacker.scan.models import ScanSession
from comicrepacker.scan.orchestrator import ScanOrchestrator
from comicrepacker.scan.view import ResultView

logger = logging.getLogger("comicrepacker.workspace")


class Workspace:
    """One operator's scan session with its orchestrator, coordinator and view."""

    def __init__(
        self,
        scan_engine=None,
        conversion_engine=None,
        channel: Optional[EventChannel] = None,
        cancel_timeout: Optional[float] = None,
        workers: Optional[int] = None,
    ):
        self.channel = channel or EventChannel()
        self.session = ScanSession()
        if scan_engine is None:
            scan_engine = DirectoryScanEngine(self.channel.publish_threadsafe)
        if conversion_engine is None:
            conversion_engine = RepackEngine()
        self.orchestrator = ScanOrchestrator(scan_engine, self.channel, self.session, cancel_timeout=cancel_timeout)
        self.coordinator = ConversionCoordinator(conversion_engine, self.session, workers=workers)
        self.view = ResultView(self.session)
        self._pump_task: Optional[asyncio.Task] = None

    def start(self) -> None:
        """Start draining engine events on the running loop."""
        if self._pump_task is None or self._pump_task.done():
            self.channel.bind(asyncio.get_running_loop())
            self._pump_task = asyncio.get_running_loop().create_task(self.orchestrator.run())
            logger.info("Event pump started")

    async def stop(self) -> None:
        if self._pump_task is not None:
            self._pump_task.cancel()
            try:
                await self._pump_task
            except asyncio.CancelledError:
                pass
            self._pump_task = None
        self.orchestrator.cancel()
        self.coordinator.shutdown()
        logger.info("Event pump stopped")

    def snapshot(self, show_only_actionable: Optional[bool] = None) -> dict:
        return self.view.snapshot(show_only_actionable, converting=self.coordinator.in_flight())


# Singleton
_workspace: Optional[Workspace] = None


def get_workspace() -> Workspace:
    global _workspace
    if _workspace is None:
        _workspace = Workspace()
    return _workspace
