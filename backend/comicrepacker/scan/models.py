"""Scan session, result and engine event models."""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ItemStatus(str, Enum):
    PENDING = "Pending"
    SUPPORTED = "Supported"
    UNSUPPORTED = "Unsupported"
    CONVERTING = "Converting"
    CONVERTED = "Converted"
    ERROR = "Error"


# Statuses that stay visible when the "only actionable" filter is on
ACTIONABLE_STATUSES = frozenset({ItemStatus.UNSUPPORTED, ItemStatus.CONVERTED, ItemStatus.ERROR})
# Statuses from which a conversion may be started (Error = operator retry)
CONVERTIBLE_STATUSES = frozenset({ItemStatus.UNSUPPORTED, ItemStatus.ERROR})


class SessionStatus(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    CANCELLING = "cancelling"


class SessionEnd(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class ArchiveInfo:
    file_type: str
    is_solid: bool = False
    is_encrypted: bool = False
    image_count: int = 0
    unsupported_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "file_type": self.file_type,
            "is_solid": self.is_solid,
            "is_encrypted": self.is_encrypted,
            "image_count": self.image_count,
            "unsupported_reason": self.unsupported_reason,
        }


@dataclass
class ScanResult:
    path: str
    status: ItemStatus = ItemStatus.PENDING
    info: Optional[ArchiveInfo] = None
    error: Optional[str] = None
    output_path: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "info": self.info.to_dict() if self.info else None,
            "error": self.error,
            "status": self.status.value,
            "output_path": self.output_path,
        }


class ScanSession:
    """State of the current scan. Mutated only on the event loop by the orchestrator
    (appends) and the coordinator (status/error of existing entries)."""

    def __init__(self):
        self.session_id = 0
        self.status = SessionStatus.IDLE
        self.directory: Optional[str] = None
        self.scanned_count = 0
        self.results: list[ScanResult] = []
        self.error: Optional[str] = None
        self.ended_by: Optional[SessionEnd] = None
        self.duplicates_dropped = 0
        self.version = 0
        self._index: dict[str, ScanResult] = {}

    def reset(self) -> None:
        self.scanned_count = 0
        self.results = []
        self._index = {}
        self.error = None
        self.ended_by = None
        self.duplicates_dropped = 0
        self.touch()

    def touch(self) -> None:
        self.version += 1

    def get(self, path: str) -> Optional[ScanResult]:
        return self._index.get(path)

    def append(self, item: ScanResult) -> bool:
        """Append to the log. Returns False when the path is already present."""
        if item.path in self._index:
            return False
        self.results.append(item)
        self._index[item.path] = item
        self.touch()
        return True


@dataclass
class ConversionTask:
    """In-flight conversion of one path."""
    path: str
    started_at: float = field(default_factory=time.monotonic)


@dataclass
class BatchSummary:
    converted: int = 0
    failed: int = 0
    skipped: int = 0


# Events pushed by the scan engine. session_id ties an event to the scan that produced it.


@dataclass(frozen=True)
class ScanProgress:
    session_id: int
    count: int


@dataclass(frozen=True)
class ScanResultEvent:
    session_id: int
    result: ScanResult


@dataclass(frozen=True)
class ScanComplete:
    session_id: int


@dataclass(frozen=True)
class ScanCancelled:
    session_id: int


ScanEvent = ScanProgress | ScanResultEvent | ScanComplete | ScanCancelled
