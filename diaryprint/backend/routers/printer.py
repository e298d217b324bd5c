from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(prefix="/api/printer", tags=["printer"])


@router.get("/status")
async def printer_status(request: Request):
    # Always 200: "offline" is an answer, not an error
    return await request.app.state.controller.get_printer_status()
