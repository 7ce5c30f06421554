"""Scan session lifecycle: start, progress, results, completion and cancellation."""
import asyncio
import logging
from typing import Optional

from comicrepacker.config import CANCEL_TIMEOUT_SECONDS
from comicrepacker.errors import EngineFailure, InvalidState
from comicrepacker.scan.channel import EventChannel
from comicrepacker.scan.models import (
    ScanCancelled,
    ScanComplete,
    ScanEvent,
    ScanProgress,
    ScanResult,
    ScanResultEvent,
    ScanSession,
    SessionEnd,
    SessionStatus,
)

logger = logging.getLogger("comicrepacker.scan")


class ScanOrchestrator:
    """Owns the ScanSession. All methods must run on the event loop that drains the channel.

    engine needs start(path, session_id), raising on a failed start, and request_cancel()."""

    def __init__(
        self,
        engine,
        channel: EventChannel,
        session: Optional[ScanSession] = None,
        cancel_timeout: Optional[float] = None,
    ):
        self.engine = engine
        self.channel = channel
        self.session = session or ScanSession()
        self.cancel_timeout = CANCEL_TIMEOUT_SECONDS if cancel_timeout is None else cancel_timeout
        self._cancel_timer: Optional[asyncio.TimerHandle] = None

    @property
    def status(self) -> SessionStatus:
        return self.session.status

    def select_directory(self, path: str) -> None:
        path = (path or "").strip()
        if not path:
            raise InvalidState("No directory selected")
        if self.session.status != SessionStatus.IDLE:
            raise InvalidState("Cannot change directory while a scan is running")
        self.session.directory = path
        self.session.reset()
        logger.info("Selected directory %s", path)

    def start_scan(self, path: Optional[str] = None) -> int:
        """Start a new session. Returns its session id."""
        path = (path if path is not None else self.session.directory or "").strip()
        if not path:
            raise InvalidState("No directory selected")
        if self.session.status != SessionStatus.IDLE:
            raise InvalidState(f"Scan already {self.session.status.value}")

        session = self.session
        session.session_id += 1
        session.directory = path
        session.reset()
        session.status = SessionStatus.SCANNING
        try:
            self.engine.start(path, session.session_id)
        except Exception as e:
            session.status = SessionStatus.IDLE
            session.error = str(e) or type(e).__name__
            session.touch()
            logger.error("Scan of %s could not start: %s", path, session.error)
            if isinstance(e, EngineFailure):
                raise
            raise EngineFailure(session.error) from e
        logger.info("Scan %s started for %s", session.session_id, path)
        return session.session_id

    def cancel(self) -> bool:
        """Ask the engine to stop. Returns False (and does nothing) unless scanning."""
        if self.session.status != SessionStatus.SCANNING:
            logger.debug("Cancel ignored in state %s", self.session.status.value)
            return False
        self.engine.request_cancel()
        self.session.status = SessionStatus.CANCELLING
        self.session.touch()
        logger.info("Cancel requested for scan %s", self.session.session_id)
        self._arm_cancel_timer()
        return True

    def on_progress(self, count: int) -> None:
        if count > self.session.scanned_count:
            self.session.scanned_count = count
            self.session.touch()

    def on_result(self, item: ScanResult) -> None:
        if not self.session.append(item):
            self.session.duplicates_dropped += 1
            self.session.touch()
            logger.warning("Duplicate result for %s dropped", item.path)

    def on_complete(self) -> None:
        self._finish(SessionEnd.COMPLETED)

    def on_cancelled(self) -> None:
        if self.session.status == SessionStatus.SCANNING:
            logger.warning("Scan %s reported cancelled without a cancel request", self.session.session_id)
            self._finish(SessionEnd.COMPLETED)
            return
        self._finish(SessionEnd.CANCELLED)

    def _finish(self, how: SessionEnd) -> None:
        if self.session.status == SessionStatus.IDLE:
            return
        self._disarm_cancel_timer()
        self.session.status = SessionStatus.IDLE
        self.session.ended_by = how
        self.session.touch()
        logger.info(
            "Scan %s %s: %s scanned, %s results",
            self.session.session_id, how.value, self.session.scanned_count, len(self.session.results),
        )

    def _arm_cancel_timer(self) -> None:
        if self.cancel_timeout <= 0:
            return
        self._disarm_cancel_timer()
        loop = asyncio.get_running_loop()
        self._cancel_timer = loop.call_later(self.cancel_timeout, self._cancel_timed_out, self.session.session_id)

    def _disarm_cancel_timer(self) -> None:
        if self._cancel_timer is not None:
            self._cancel_timer.cancel()
            self._cancel_timer = None

    def _cancel_timed_out(self, session_id: int) -> None:
        self._cancel_timer = None
        session = self.session
        if session.session_id != session_id or session.status != SessionStatus.CANCELLING:
            return
        session.status = SessionStatus.IDLE
        session.ended_by = SessionEnd.TIMEOUT
        session.error = str(EngineFailure(f"Scanner did not confirm cancellation within {self.cancel_timeout:g}s"))
        session.touch()
        logger.error("Scan %s forced idle: %s", session_id, session.error)

    # Event ingestion

    def dispatch(self, event: ScanEvent) -> None:
        if event.session_id != self.session.session_id or self.session.status == SessionStatus.IDLE:
            logger.debug("Dropping stale %s from scan %s", type(event).__name__, event.session_id)
            return
        if isinstance(event, ScanProgress):
            self.on_progress(event.count)
        elif isinstance(event, ScanResultEvent):
            self.on_result(event.result)
        elif isinstance(event, ScanComplete):
            self.on_complete()
        elif isinstance(event, ScanCancelled):
            self.on_cancelled()
        else:
            logger.warning("Unknown scan event %r", event)

    def pump(self) -> int:
        """Apply every event already queued. Returns how many were handled."""
        handled = 0
        while (event := self.channel.get_nowait()) is not None:
            self.dispatch(event)
            handled += 1
        return handled

    async def run(self) -> None:
        """Drain the channel forever. Started by the app lifespan."""
        self.channel.bind(asyncio.get_running_loop())
        while True:
            event = await self.channel.get()
            try:
                self.dispatch(event)
            except Exception:
                logger.exception("Failed to apply %s", type(event).__name__)
