"""Per-item conversion state: single conversions and the sequential convert-all batch."""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from comicrepacker.config import CONVERSION_WORKERS
from comicrepacker.errors import InvalidState, NotFound
from comicrepacker.scan.models import (
    CONVERTIBLE_STATUSES,
    BatchSummary,
    ConversionTask,
    ItemStatus,
    ScanResult,
    ScanSession,
)

logger = logging.getLogger("comicrepacker.convert")


class ConversionCoordinator:
    """Updates status/error of existing log entries. Runs on the session's event loop;
    the engine itself runs on worker threads. engine.convert(path) blocks, returns the
    output path and raises with a user-facing message on failure."""

    def __init__(self, engine, session: ScanSession, workers: Optional[int] = None):
        self.engine = engine
        self.session = session
        self.workers = workers or CONVERSION_WORKERS
        self._tasks: dict[str, ConversionTask] = {}
        self._slots: Optional[asyncio.Semaphore] = None
        self._slots_loop: Optional[asyncio.AbstractEventLoop] = None
        self._executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="repack")
        self._background: set[asyncio.Task] = set()
        logger.info("ConversionCoordinator initialized with workers=%s", self.workers)

    def in_flight(self) -> list[str]:
        return list(self._tasks)

    def _accept(self, path: str) -> tuple[ScanResult, ConversionTask]:
        item = self.session.get(path)
        if item is None:
            raise NotFound(f"No scan result for {path}")
        if item.status == ItemStatus.CONVERTING:
            raise InvalidState(f"{path} is already converting")
        if item.status not in CONVERTIBLE_STATUSES:
            raise InvalidState(f"{path} is {item.status.value} and cannot be converted")
        item.status = ItemStatus.CONVERTING
        task = ConversionTask(path=path)
        self._tasks[path] = task
        self.session.touch()
        return item, task

    async def convert(self, path: str) -> ScanResult:
        """Convert one item. Validation errors are raised before the first suspension point;
        engine failures are recorded on the item, never raised."""
        item, task = self._accept(path)
        return await self._run(item, task)

    async def _run(self, item: ScanResult, task: ConversionTask) -> ScanResult:
        loop = asyncio.get_running_loop()
        if self._slots is None or self._slots_loop is not loop:
            self._slots = asyncio.Semaphore(self.workers)
            self._slots_loop = loop
        try:
            async with self._slots:
                logger.info("Converting %s", item.path)
                output = await loop.run_in_executor(self._executor, self.engine.convert, item.path)
        except asyncio.CancelledError:
            item.status = ItemStatus.ERROR
            item.error = "Conversion cancelled"
            logger.warning("Conversion of %s cancelled", item.path)
            raise
        except Exception as e:
            item.status = ItemStatus.ERROR
            item.error = str(e) or type(e).__name__
            logger.error("Conversion failed for %s: %s", item.path, item.error)
        else:
            item.status = ItemStatus.CONVERTED
            item.error = None
            item.output_path = output
            logger.info("Converted %s -> %s", item.path, output)
        finally:
            # a rescan may have started a newer conversion of the same path
            if self._tasks.get(item.path) is task:
                del self._tasks[item.path]
            self.session.touch()
        return item

    def submit(self, path: str) -> asyncio.Task:
        """Validate now, convert in the background."""
        item, task = self._accept(path)
        return self._spawn(self._run(item, task))

    def snapshot_unsupported(self) -> list[str]:
        return [r.path for r in self.session.results if r.status == ItemStatus.UNSUPPORTED]

    async def convert_all(self, paths: Optional[list[str]] = None) -> BatchSummary:
        """Convert the Unsupported items present at call time, one after another."""
        snapshot = self.snapshot_unsupported() if paths is None else list(paths)
        summary = BatchSummary()
        if not snapshot:
            return summary
        logger.info("Batch conversion of %s items started", len(snapshot))
        for path in snapshot:
            item = self.session.get(path)
            if item is None or item.status != ItemStatus.UNSUPPORTED:
                summary.skipped += 1
                logger.info("Skipping %s: no longer unsupported", path)
                continue
            result = await self.convert(path)
            if result.status == ItemStatus.CONVERTED:
                summary.converted += 1
            else:
                summary.failed += 1
        logger.info(
            "Batch conversion finished: %s converted, %s failed, %s skipped",
            summary.converted, summary.failed, summary.skipped,
        )
        return summary

    def submit_all(self) -> tuple[list[str], asyncio.Task]:
        """Take the snapshot now and run the batch in the background."""
        snapshot = self.snapshot_unsupported()
        return snapshot, self._spawn(self.convert_all(snapshot))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
