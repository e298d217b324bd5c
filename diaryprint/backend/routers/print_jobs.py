from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from diaryprint.models import CompletionNotice, PrintRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/print", tags=["print"])


@router.post("")
async def print_diary(request: Request, payload: PrintRequest):
    controller = request.app.state.controller
    job = await controller.print_diary(payload.diary_id, payload.user_id, payload.page_numbers)
    return {
        "success": True,
        "message": "Print request accepted",
        "jobId": job.job_id,
        "status": job.status.value,
        "totalPages": job.total_pages,
    }


@router.get("/status/{job_id}")
async def print_status(request: Request, job_id: str):
    job = request.app.state.controller.get_print_status(job_id)
    return {"success": True, "data": job.to_wire()}


@router.post("/complete")
async def print_complete(request: Request, payload: CompletionNotice):
    """Completion webhook called by the print server."""
    request.app.state.controller.handle_print_complete(payload.job_id, payload.success, payload.error)
    return {"success": True}
