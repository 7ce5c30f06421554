"""API routes for scanning a library and converting unsupported archives."""
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from comicrepacker.config import ARCHIVE_EXTENSIONS, CONVERSION_WORKERS
from comicrepacker.errors import EngineFailure, InvalidState, NotFound
from comicrepacker.scan.workspace import Workspace, get_workspace

logger = logging.getLogger("comicrepacker.api")
router = APIRouter(prefix="/api", tags=["scanner"])

# Every handler touching the session is `async def` so it runs on the event loop that
# owns the session, never on the threadpool.


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/formats")
def get_formats():
    return {
        "archive": sorted(e.lstrip(".") for e in ARCHIVE_EXTENSIONS),
        "output": "cbz",
        "conversion_workers": CONVERSION_WORKERS,
    }


@router.get("/session")
async def session_status(
    actionable: Optional[bool] = Query(None, description="Override the stored filter for this read"),
    ws: Workspace = Depends(get_workspace),
):
    """Session status, counters and the (filtered) result log. Poll this for live progress."""
    ws.orchestrator.pump()
    return ws.snapshot(actionable)


@router.get("/results")
async def list_results(
    actionable: Optional[bool] = Query(None),
    ws: Workspace = Depends(get_workspace),
):
    ws.orchestrator.pump()
    return {
        "results": [r.to_dict() for r in ws.view.filtered_results(actionable)],
        "scanned_count": ws.view.scanned_count(),
        "unsupported_count": ws.view.unsupported_count(),
    }


@router.post("/directory")
async def select_directory(path: str = Body(..., embed=True), ws: Workspace = Depends(get_workspace)):
    """Record the folder picked in the front-end and clear the previous results."""
    path = (path or "").strip()
    if not path:
        raise HTTPException(400, "Path is required")
    try:
        ws.orchestrator.select_directory(path)
    except InvalidState as e:
        raise HTTPException(409, str(e))
    return {"directory": path}


@router.post("/scan", status_code=202)
async def start_scan(path: Optional[str] = Body(None, embed=True), ws: Workspace = Depends(get_workspace)):
    """Start scanning `path` (or the selected directory). Poll /api/session for progress."""
    try:
        session_id = ws.orchestrator.start_scan(path)
    except InvalidState as e:
        raise HTTPException(409, str(e))
    except EngineFailure as e:
        raise HTTPException(502, f"Scan could not start: {e}")
    return {"session_id": session_id, "status": ws.session.status.value}


@router.post("/scan/cancel")
async def cancel_scan(ws: Workspace = Depends(get_workspace)):
    requested = ws.orchestrator.cancel()
    return {"requested": requested, "status": ws.session.status.value}


@router.post("/convert", status_code=202)
async def convert(path: str = Body(..., embed=True), ws: Workspace = Depends(get_workspace)):
    """Start converting one archive. The item shows Converting until it resolves."""
    ws.orchestrator.pump()
    try:
        ws.coordinator.submit(path)
    except NotFound as e:
        raise HTTPException(404, str(e))
    except InvalidState as e:
        raise HTTPException(409, str(e))
    return {"path": path, "status": ws.session.get(path).status.value}


@router.post("/convert-all", status_code=202)
async def convert_all(ws: Workspace = Depends(get_workspace)):
    """Convert every currently unsupported archive, one at a time, in the background."""
    ws.orchestrator.pump()
    snapshot, _ = ws.coordinator.submit_all()
    logger.info("Convert-all requested for %s items", len(snapshot))
    return {"queued": len(snapshot), "paths": snapshot}


@router.put("/filter")
async def set_filter(show_only_actionable: bool = Body(..., embed=True), ws: Workspace = Depends(get_workspace)):
    ws.view.set_filter(show_only_actionable)
    return {"show_only_actionable": ws.view.show_only_actionable}
