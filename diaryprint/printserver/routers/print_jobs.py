from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from diaryprint.models import PrintSubmission

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["print"])


@router.post("/print")
async def submit_print(request: Request, payload: PrintSubmission):
    logger.info("Print request for job %s (%d page(s))", payload.job_id, len(payload.pages or []))
    position = request.app.state.print_queue.enqueue(payload)
    return {
        "success": True,
        "message": "Print job queued",
        "queuePosition": position,
    }


@router.get("/queue")
async def list_queue(request: Request):
    """Live view of the waiting jobs (page images omitted)."""
    return {"success": True, **request.app.state.print_queue.snapshot()}
