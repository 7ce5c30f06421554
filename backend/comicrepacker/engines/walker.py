"""Scan engine: walks a directory on a worker thread and streams events to the orchestrator."""
import logging
import os
import threading
from pathlib import Path
from typing import Callable, Optional

from comicrepacker.config import ARCHIVE_EXTENSIONS
from comicrepacker.engines.sevenzip import analyze_archive
from comicrepacker.errors import EngineFailure
from comicrepacker.scan.models import (
    ArchiveInfo,
    ItemStatus,
    ScanCancelled,
    ScanComplete,
    ScanEvent,
    ScanProgress,
    ScanResult,
    ScanResultEvent,
)

logger = logging.getLogger("comicrepacker.walker")


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def iter_archives(root: Path, extensions: set[str], cancel: Optional[threading.Event] = None):
    """Yield archive paths under root, skipping hidden files and directories.
    Stops early (without raising) once cancel is set."""
    for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
        if cancel is not None and cancel.is_set():
            return
        dirnames[:] = sorted(d for d in dirnames if not _is_hidden(d))
        for filename in sorted(filenames):
            if cancel is not None and cancel.is_set():
                return
            if _is_hidden(filename):
                continue
            if Path(filename).suffix.lower() in extensions:
                yield Path(dirpath) / filename


def _log_walk_error(err: OSError) -> None:
    logger.warning("Error reading entry: %s", err)


def classify(path: Path, analyze: Callable[[Path], ArchiveInfo] = analyze_archive) -> ScanResult:
    result = ScanResult(path=str(path))
    try:
        info = analyze(path)
    except Exception as e:
        result.status = ItemStatus.ERROR
        result.error = str(e) or type(e).__name__
        logger.warning("Could not analyze %s: %s", path, result.error)
        return result
    result.info = info
    result.status = ItemStatus.UNSUPPORTED if info.unsupported_reason else ItemStatus.SUPPORTED
    return result


class DirectoryScanEngine:
    """One scan at a time; each start() gets its own cancel flag and worker thread."""

    def __init__(
        self,
        sink: Callable[[ScanEvent], None],
        extensions: Optional[set[str]] = None,
        analyze: Callable[[Path], ArchiveInfo] = analyze_archive,
    ):
        self.sink = sink
        self.extensions = extensions or ARCHIVE_EXTENSIONS
        self.analyze = analyze
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self, path: str, session_id: int) -> None:
        root = Path(path).expanduser()
        if not root.is_dir():
            raise EngineFailure(f"Not a directory: {path}")
        # a previous worker that ignored its flag keeps its own Event
        self._cancel = threading.Event()
        self._thread = threading.Thread(
            target=self._scan,
            args=(root, session_id, self._cancel),
            name=f"scan-{session_id}",
            daemon=True,
        )
        self._thread.start()

    def request_cancel(self) -> None:
        self._cancel.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _scan(self, root: Path, session_id: int, cancel: threading.Event) -> None:
        count = 0
        try:
            for path in iter_archives(root, self.extensions, cancel):
                count += 1
                self.sink(ScanProgress(session_id, count))
                self.sink(ScanResultEvent(session_id, classify(path, self.analyze)))
        except Exception:
            logger.exception("Scan of %s crashed after %s files", root, count)
        if cancel.is_set():
            logger.info("Scan %s cancelled after %s files", session_id, count)
            self.sink(ScanCancelled(session_id))
        else:
            logger.info("Scan %s complete: %s files", session_id, count)
            self.sink(ScanComplete(session_id))
