"""Process-lifetime table of print jobs, keyed by job id."""
from __future__ import annotations

import logging
import random
import string
import time
from abc import ABC, abstractmethod
from typing import Optional

from diaryprint.models import JobStatus, PrintJob, utcnow

logger = logging.getLogger(__name__)

_SUFFIX_CHARS = string.ascii_lowercase + string.digits


def new_job_id() -> str:
    """``print_<epoch-millis>_<9 base36 chars>``."""
    suffix = "".join(random.choices(_SUFFIX_CHARS, k=9))
    return f"print_{int(time.time() * 1000)}_{suffix}"


class JobStore(ABC):
    @abstractmethod
    def add(self, job: PrintJob) -> None: ...

    @abstractmethod
    def get(self, job_id: str) -> Optional[PrintJob]: ...

    @abstractmethod
    def save(self, job: PrintJob) -> None: ...

    def __contains__(self, job_id: str) -> bool:
        return self.get(job_id) is not None

    def create(self, diary_id: str, user_id: str, total_pages: int) -> PrintJob:
        """Store a new pending job under an id this store has never issued."""
        job_id = new_job_id()
        while job_id in self:
            job_id = new_job_id()
        job = PrintJob(job_id=job_id, diary_id=diary_id, user_id=user_id, total_pages=total_pages)
        self.add(job)
        return job

    def transition(
        self,
        job_id: str,
        status: JobStatus,
        error: Optional[str] = None,
        expect: Optional[JobStatus] = None,
    ) -> Optional[PrintJob]:
        """Move a job to ``status``.

        Returns None if the job is unknown, or if ``expect`` is given and the
        job has already left that state.
        """
        job = self.get(job_id)
        if job is None:
            return None
        if expect is not None and job.status != expect:
            logger.info("Job %s is %s, not %s; leaving it", job_id, job.status.value, expect.value)
            return None

        now = utcnow()
        job.status = status
        job.updated_at = now
        if error is not None or status.terminal:
            job.error = error
        if status.terminal:
            job.completed_at = now
        self.save(job)
        return job


class InMemoryJobStore(JobStore):
    """Jobs live in a dict and are lost on restart."""

    def __init__(self) -> None:
        self._jobs: dict[str, PrintJob] = {}

    def add(self, job: PrintJob) -> None:
        self._jobs[job.job_id] = job

    def get(self, job_id: str) -> Optional[PrintJob]:
        return self._jobs.get(job_id)

    def save(self, job: PrintJob) -> None:
        self._jobs[job.job_id] = job

    def __len__(self) -> int:
        return len(self._jobs)
