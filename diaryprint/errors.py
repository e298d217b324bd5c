"""Error taxonomy shared by the backend and the print server.

Each error carries the HTTP status the API layer answers with; the
exception handlers installed by ``install_error_handlers`` turn them into
``{"success": false, "error": ...}`` bodies.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DiaryPrintError(RuntimeError):
    status_code = 500


class ValidationError(DiaryPrintError):
    """Missing or malformed required fields."""

    status_code = 400


class NotFoundError(DiaryPrintError):
    """Unknown diary, unowned diary, no printable pages or unknown job id."""

    status_code = 404


class UpstreamUnavailable(DiaryPrintError):
    """The print server (or the backend, for webhooks) could not be reached."""

    status_code = 502


class PrintExecutionFailure(DiaryPrintError):
    """The print command failed or a page could not be staged for printing."""

    status_code = 500


def _error_body(message: str) -> dict:
    return {"success": False, "error": message}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DiaryPrintError)
    async def _diary_print_error(request: Request, exc: DiaryPrintError):
        logger.info("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc)
        return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc)))

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"Invalid request: {field} {first.get('msg', '')}".strip()
        return JSONResponse(status_code=400, content=_error_body(message))

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=_error_body("Internal server error"))
