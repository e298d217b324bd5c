from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/printer", tags=["printer"])


@router.get("/status")
async def printer_status(request: Request):
    driver = request.app.state.driver
    queue = request.app.state.print_queue
    try:
        status = await driver.check_printer_status()
    except Exception as e:
        logger.exception("Printer status check failed")
        return JSONResponse(
            status_code=500,
            content={"success": False, "status": "error", "message": str(e)},
        )

    return {
        "success": True,
        "status": "ready" if status["available"] else "offline",
        "message": status["message"],
        "queueLength": len(queue),
        "isPrinting": queue.is_printing,
    }
