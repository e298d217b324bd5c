"""Console entry points for the two services."""
from __future__ import annotations

import uvicorn

from diaryprint.config import get_backend_settings, get_print_server_settings


def run_backend() -> None:
    settings = get_backend_settings()
    uvicorn.run(
        "diaryprint.backend.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


def run_printserver() -> None:
    settings = get_print_server_settings()
    uvicorn.run(
        "diaryprint.printserver.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
