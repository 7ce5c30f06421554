from .models import ArchiveInfo, ItemStatus, ScanResult, ScanSession, SessionStatus
from .orchestrator import ScanOrchestrator
from .coordinator import ConversionCoordinator
from .view import ResultView

__all__ = [
    "ArchiveInfo",
    "ConversionCoordinator",
    "ItemStatus",
    "ResultView",
    "ScanOrchestrator",
    "ScanResult",
    "ScanSession",
    "SessionStatus",
]
