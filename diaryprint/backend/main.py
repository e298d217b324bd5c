from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request

from diaryprint import health
from diaryprint.backend.routers import print_jobs, printer
from diaryprint.backend.services.background import TaskRunner
from diaryprint.backend.services.diary_repository import DiaryRepository, InMemoryDiaryRepository
from diaryprint.backend.services.job_store import InMemoryJobStore, JobStore
from diaryprint.backend.services.print_controller import PrintController
from diaryprint.backend.services.print_server_client import PrintServerClient
from diaryprint.config import BackendSettings, get_backend_settings
from diaryprint.errors import install_error_handlers

logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[BackendSettings] = None,
    diaries: Optional[DiaryRepository] = None,
    jobs: Optional[JobStore] = None,
    print_server_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    settings = settings or get_backend_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info("=== Diary print backend settings ===")
    logger.info("  print_server_url: %s", settings.print_server_url)
    logger.info("  timeouts:         dispatch=%ss status=%ss", settings.dispatch_timeout, settings.status_timeout)
    logger.info("  diary_fixtures:   %r", settings.diary_fixtures)

    if diaries is None:
        if settings.diary_fixtures:
            diaries = InMemoryDiaryRepository.from_json(settings.diary_fixtures)
        else:
            diaries = InMemoryDiaryRepository()

    runner = TaskRunner()
    client = PrintServerClient(
        settings.print_server_url,
        dispatch_timeout=settings.dispatch_timeout,
        status_timeout=settings.status_timeout,
        transport=print_server_transport,
    )
    controller = PrintController(diaries, jobs or InMemoryJobStore(), client, runner)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await runner.shutdown()

    app = FastAPI(title="Diary Print Backend", version="0.3.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.runner = runner
    app.state.controller = controller

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        response = await call_next(request)
        return response

    install_error_handlers(app)
    app.include_router(health.router)
    app.include_router(print_jobs.router)
    app.include_router(printer.router)

    return app
