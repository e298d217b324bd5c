"""Accept diary print requests and track them until the print server reports back."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from diaryprint.errors import NotFoundError, UpstreamUnavailable, ValidationError
from diaryprint.models import JobStatus, PrintJob
from diaryprint.backend.services.background import TaskRunner
from diaryprint.backend.services.diary_repository import DiaryRepository
from diaryprint.backend.services.job_store import JobStore
from diaryprint.backend.services.print_server_client import PrintServerClient

logger = logging.getLogger(__name__)


class PrintController:
    """
    Job lifecycle on the backend side.

    ``print_diary`` answers as soon as the job is recorded; the hand-off to
    the print server runs on the task runner and the outcome only shows up
    in the job store. Status moves pending -> sending -> printing and ends
    in completed or failed (sending -> failed when the hand-off fails).
    """

    def __init__(
        self,
        diaries: DiaryRepository,
        jobs: JobStore,
        client: PrintServerClient,
        runner: TaskRunner,
    ) -> None:
        self._diaries = diaries
        self._jobs = jobs
        self._client = client
        self._runner = runner

    async def print_diary(
        self,
        diary_id: Optional[str],
        user_id: Optional[str],
        page_numbers: Optional[Sequence[int]] = None,
    ) -> PrintJob:
        if not diary_id or not user_id:
            raise ValidationError("diaryId and userId are required")

        logger.info("Print request: diary=%s user=%s pages=%s", diary_id, user_id, page_numbers)

        diary = await self._diaries.get_diary(diary_id)
        if diary is None or diary.user_id != user_id:
            raise NotFoundError("Diary not found")

        printable = await self._diaries.get_printable(diary_id)
        if printable is None or not printable.pages:
            raise NotFoundError("No printable pages for this diary; complete the diary first")

        pages = printable.pages
        if page_numbers:
            wanted = set(page_numbers)
            pages = [p for p in pages if p.page_number in wanted]
        if not pages:
            raise ValidationError("No pages to print")

        job = self._jobs.create(diary_id, user_id, total_pages=len(pages))
        print_data = {
            "diaryId": diary_id,
            "title": diary.title,
            "date": diary.date,
            "pages": [p.to_wire() for p in pages],
            "mimeType": printable.mime_type,
        }
        self._runner.submit(self.dispatch(job.job_id, print_data), name=f"dispatch-{job.job_id}")
        logger.info("Job %s created for diary %s (%d page(s))", job.job_id, diary_id, len(pages))
        return job

    async def dispatch(self, job_id: str, print_data: Dict[str, Any]) -> None:
        """Send one job to the print server. One attempt; failure is final."""
        self._jobs.transition(job_id, JobStatus.SENDING, expect=JobStatus.PENDING)
        logger.info("Sending job %s to %s", job_id, self._client.base_url)

        try:
            await self._client.submit({"jobId": job_id, **print_data})
        except UpstreamUnavailable as e:
            logger.error("Job %s not accepted: %s", job_id, e)
            self._jobs.transition(job_id, JobStatus.FAILED, error=str(e), expect=JobStatus.SENDING)
            return

        # A completion webhook may already have landed; never step back from it
        if self._jobs.transition(job_id, JobStatus.PRINTING, expect=JobStatus.SENDING):
            logger.info("Job %s accepted by print server", job_id)

    def get_print_status(self, job_id: str) -> PrintJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError("Print job not found")
        return job

    async def get_printer_status(self) -> dict:
        """Never raises: an unreachable print server is reported as offline."""
        try:
            result = await self._client.printer_status()
        except UpstreamUnavailable as e:
            logger.warning("Print server status check failed: %s", e)
            return {
                "success": False,
                "data": {
                    "online": False,
                    "status": "offline",
                    "message": "Cannot connect to the print server",
                },
            }

        return {
            "success": True,
            "data": {
                "online": bool(result.get("success")),
                "status": result.get("status") or "unknown",
                "message": result.get("message"),
            },
        }

    def handle_print_complete(self, job_id: Optional[str], success: bool, error: Optional[str] = None) -> PrintJob:
        if not job_id:
            raise ValidationError("jobId is required")

        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError("Print job not found")
        if job.status.terminal:
            logger.warning("Job %s already %s; overwriting with completion report", job_id, job.status.value)

        status = JobStatus.COMPLETED if success else JobStatus.FAILED
        job = self._jobs.transition(job_id, status, error=error)
        logger.info("Job %s %s%s", job_id, status.value, f": {error}" if error else "")
        return job
