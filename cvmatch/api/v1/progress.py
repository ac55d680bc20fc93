from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from cvmatch.core.security import require_api_key
from cvmatch.schemas.progress import ProgressSnapshot
from cvmatch.services.progress import ProgressTracker

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_api_key)])


def _sse_data(payload: dict[str, Any]) -> str:
    data = json.dumps(payload, ensure_ascii=False)
    return f"data: {data}\n\n"


async def progress_frames(tracker: ProgressTracker, analysis_id: str) -> AsyncIterator[str]:
    """SSE frames for one analysis, ending after its terminal event or when it is evicted."""
    try:
        async for event in tracker.subscribe(analysis_id):
            yield _sse_data(event.to_wire())
    except KeyError:
        logger.info("progress_stream_evicted analysis_id=%s", analysis_id)


@router.get("/progress/{analysis_id}", response_model=ProgressSnapshot)
async def get_progress(request: Request, analysis_id: str):
    snapshot = request.app.state.tracker.snapshot(analysis_id)
    if snapshot is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Progress not found.")
    return snapshot


@router.get("/progress/{analysis_id}/stream")
async def stream_progress(request: Request, analysis_id: str):
    tracker = request.app.state.tracker
    if analysis_id not in tracker:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Progress not found.")

    return StreamingResponse(
        progress_frames(tracker, analysis_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
