"""Shared fixtures: fake engines that record calls and a workspace wired to them."""

from __future__ import annotations

import threading

import pytest

from comicrepacker.errors import ConversionFailed
from comicrepacker.scan.models import (
    ArchiveInfo,
    ItemStatus,
    ScanCancelled,
    ScanComplete,
    ScanProgress,
    ScanResult,
    ScanResultEvent,
)
from comicrepacker.scan.workspace import Workspace

RAR5_INFO = ArchiveInfo(
    file_type="Rar5", is_solid=True, image_count=24, unsupported_reason="RAR5 format"
)
ZIP_INFO = ArchiveInfo(file_type="zip", image_count=18)


class FakeScanEngine:
    """Records start/cancel; tests emit events for the current session explicitly."""

    def __init__(self, channel=None, fail_with: Exception | None = None):
        self.channel = channel
        self.fail_with = fail_with
        self.started: list[tuple[str, int]] = []
        self.cancel_requests = 0

    def start(self, path: str, session_id: int) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.started.append((path, session_id))

    def request_cancel(self) -> None:
        self.cancel_requests += 1

    @property
    def session_id(self) -> int:
        return self.started[-1][1]

    def progress(self, count: int) -> None:
        self.channel.publish(ScanProgress(self.session_id, count))

    def result(self, path: str, status: ItemStatus, info: ArchiveInfo | None = None) -> None:
        item = ScanResult(path=path, status=status, info=info)
        self.channel.publish(ScanResultEvent(self.session_id, item))

    def complete(self) -> None:
        self.channel.publish(ScanComplete(self.session_id))

    def cancelled(self) -> None:
        self.channel.publish(ScanCancelled(self.session_id))


class FakeConversionEngine:
    """Outcome per path: None = success, str = failure message. Records call order."""

    def __init__(self, outcomes: dict[str, str | None] | None = None):
        self.outcomes = outcomes or {}
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def convert(self, path: str) -> str:
        with self._lock:
            self.calls.append(path)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            message = self.outcomes.get(path)
            if message is not None:
                raise ConversionFailed(message)
            return path.rsplit(".", 1)[0] + ".cbz"
        finally:
            with self._lock:
                self.active -= 1


@pytest.fixture
def conversion_engine() -> FakeConversionEngine:
    return FakeConversionEngine()


@pytest.fixture
def workspace(conversion_engine) -> Workspace:
    scan_engine = FakeScanEngine()
    ws = Workspace(
        scan_engine=scan_engine,
        conversion_engine=conversion_engine,
        cancel_timeout=0,
        workers=1,
    )
    scan_engine.channel = ws.channel
    yield ws
    ws.coordinator.shutdown()


@pytest.fixture
def scan_engine(workspace) -> FakeScanEngine:
    return workspace.orchestrator.engine


@pytest.fixture
def scanned(workspace, scan_engine) -> Workspace:
    """Workspace after a finished scan: one supported, two unsupported, one analysis error."""
    workspace.orchestrator.start_scan("/books")
    scan_engine.progress(4)
    scan_engine.result("/books/a.cbz", ItemStatus.SUPPORTED, ZIP_INFO)
    scan_engine.result("/books/b.rar5", ItemStatus.UNSUPPORTED, RAR5_INFO)
    scan_engine.result("/books/c.cbr", ItemStatus.UNSUPPORTED, RAR5_INFO)
    scan_engine.result("/books/d.cbr", ItemStatus.ERROR)
    scan_engine.complete()
    workspace.orchestrator.pump()
    return workspace

