"""Read-only projections of the scan session for display."""
from typing import Optional

from comicrepacker.scan.models import ACTIONABLE_STATUSES, ItemStatus, ScanResult, ScanSession


def filtered_results(results: list[ScanResult], show_only_actionable: bool) -> list[ScanResult]:
    if not show_only_actionable:
        return list(results)
    return [r for r in results if r.status in ACTIONABLE_STATUSES]


def unsupported_count(results: list[ScanResult]) -> int:
    return sum(1 for r in results if r.status == ItemStatus.UNSUPPORTED)


class ResultView:
    """Filter state plus derived counters. Holds a read reference to the session."""

    def __init__(self, session: ScanSession, show_only_actionable: bool = False):
        self.session = session
        self.show_only_actionable = show_only_actionable

    def set_filter(self, show_only_actionable: bool) -> None:
        self.show_only_actionable = bool(show_only_actionable)

    def filtered_results(self, show_only_actionable: Optional[bool] = None) -> list[ScanResult]:
        if show_only_actionable is None:
            show_only_actionable = self.show_only_actionable
        return filtered_results(self.session.results, show_only_actionable)

    def unsupported_count(self) -> int:
        return unsupported_count(self.session.results)

    def scanned_count(self) -> int:
        return self.session.scanned_count

    def snapshot(self, show_only_actionable: Optional[bool] = None, converting: Optional[list[str]] = None) -> dict:
        session = self.session
        if show_only_actionable is None:
            show_only_actionable = self.show_only_actionable
        return {
            "session_id": session.session_id,
            "status": session.status.value,
            "directory": session.directory,
            "scanned_count": session.scanned_count,
            "result_count": len(session.results),
            "unsupported_count": self.unsupported_count(),
            "duplicates_dropped": session.duplicates_dropped,
            "error": session.error,
            "ended_by": session.ended_by.value if session.ended_by else None,
            "show_only_actionable": show_only_actionable,
            "converting": converting or [],
            "version": session.version,
            "results": [r.to_dict() for r in self.filtered_results(show_only_actionable)],
        }
