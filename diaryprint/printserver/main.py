from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request

from diaryprint import health
from diaryprint.config import PrintServerSettings, get_print_server_settings
from diaryprint.errors import install_error_handlers
from diaryprint.printserver.routers import print_jobs, printer
from diaryprint.printserver.services.notifier import CompletionNotifier
from diaryprint.printserver.services.print_queue import PrintQueue
from diaryprint.printserver.services.printer_driver import PrinterDriver

logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[PrintServerSettings] = None,
    driver=None,
    webhook_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    settings = settings or get_print_server_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info("=== Diary print server settings ===")
    logger.info("  printer_name:  %r", settings.printer_name)
    logger.info("  paper/quality: %s / %s", settings.paper_size, settings.print_quality)
    logger.info("  cups_server:   %r", settings.cups_server)
    logger.info("  backend_url:   %s", settings.backend_url)
    logger.info("  simulated:     %s", settings.simulated)

    driver = driver or PrinterDriver(settings)
    notifier = CompletionNotifier(
        settings.backend_url,
        timeout=settings.webhook_timeout,
        retries=settings.webhook_retries,
        backoff=settings.webhook_backoff,
        transport=webhook_transport,
    )
    queue = PrintQueue(driver, notifier, cooldown=settings.queue_cooldown)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if hasattr(driver, "initialize"):
            await driver.initialize()
        yield
        if queue.is_printing:
            logger.warning("Shutting down while job %s is printing", queue.current.job_id)
        await queue.close()
        if hasattr(driver, "cleanup"):
            driver.cleanup()

    app = FastAPI(title="Diary Print Server", version="0.3.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.driver = driver
    app.state.notifier = notifier
    app.state.print_queue = queue

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        response = await call_next(request)
        return response

    install_error_handlers(app)
    app.include_router(health.router)
    app.include_router(printer.router)
    app.include_router(print_jobs.router)

    return app
