"""Sequential print queue in front of the single physical printer."""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Optional, Protocol

from diaryprint.errors import ValidationError
from diaryprint.models import EntryStatus, PrintQueueEntry, PrintSubmission
from diaryprint.printserver.services.notifier import CompletionNotifier

logger = logging.getLogger(__name__)


class Driver(Protocol):
    async def print_diary(self, entry: PrintQueueEntry) -> None: ...


class EntryStore(ABC):
    """FIFO storage for entries waiting on the printer."""

    @abstractmethod
    def append(self, entry: PrintQueueEntry) -> int:
        """Add ``entry`` at the tail and return the new length."""

    @abstractmethod
    def pop(self) -> Optional[PrintQueueEntry]:
        """Remove and return the head, or None when empty."""

    @abstractmethod
    def entries(self) -> list[PrintQueueEntry]: ...

    @abstractmethod
    def __len__(self) -> int: ...


class InMemoryEntryStore(EntryStore):
    def __init__(self) -> None:
        self._entries: deque[PrintQueueEntry] = deque()

    def append(self, entry: PrintQueueEntry) -> int:
        self._entries.append(entry)
        return len(self._entries)

    def pop(self) -> Optional[PrintQueueEntry]:
        return self._entries.popleft() if self._entries else None

    def entries(self) -> list[PrintQueueEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class PrintQueue:
    """
    Feeds queued diaries to the driver one at a time, in arrival order.

    ``is_printing`` is the only guard on the printer. It is checked and set
    with no await in between, which is enough on a single event loop; code
    driving this queue from other threads needs a real lock around
    ``drain``. Drains are self-scheduled: ``enqueue`` kicks one off and each
    finished job schedules the next after ``cooldown`` seconds.
    """

    def __init__(
        self,
        driver: Driver,
        notifier: CompletionNotifier,
        cooldown: float = 1.0,
        store: Optional[EntryStore] = None,
    ) -> None:
        self._driver = driver
        self._notifier = notifier
        self._cooldown = cooldown
        self._store = store if store is not None else InMemoryEntryStore()
        self._is_printing = False
        self._current: Optional[PrintQueueEntry] = None
        self._ready_at = 0.0
        self._tasks: set[asyncio.Task] = set()

    @property
    def is_printing(self) -> bool:
        return self._is_printing

    @property
    def current(self) -> Optional[PrintQueueEntry]:
        return self._current

    def __len__(self) -> int:
        return len(self._store)

    def enqueue(self, submission: PrintSubmission) -> int:
        if not submission.job_id or not submission.pages:
            raise ValidationError("Invalid print request: jobId and at least one page are required")

        entry = PrintQueueEntry(
            job_id=submission.job_id,
            diary_id=submission.diary_id,
            title=submission.title,
            date=submission.date,
            pages=submission.pages,
            mime_type=submission.mime_type,
        )
        position = self._store.append(entry)
        logger.info("Queued job %s (%d page(s)), %d waiting", entry.job_id, len(entry.pages), position)
        self._schedule()
        return position

    async def drain(self) -> None:
        if self._is_printing:
            logger.debug("Printer busy, drain skipped")
            return

        loop = asyncio.get_running_loop()
        wait = self._ready_at - loop.time()
        if wait > 0:
            # Still settling after the previous job
            self._schedule(wait)
            return

        entry = self._store.pop()
        if entry is None:
            return

        self._is_printing = True
        self._current = entry
        entry.status = EntryStatus.PRINTING
        logger.info("Printing job %s (%d page(s))", entry.job_id, len(entry.pages))

        error: Optional[str] = None
        try:
            await self._driver.print_diary(entry)
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.exception("Job %s failed", entry.job_id)
        else:
            logger.info("Job %s printed", entry.job_id)
        finally:
            self._is_printing = False
            self._current = None
            self._ready_at = loop.time() + self._cooldown

        await self._notifier.notify(entry.job_id, error is None, error)

        if len(self._store):
            logger.info("%d job(s) left, next in %.1fs", len(self._store), self._cooldown)
            self._schedule(self._cooldown)

    def snapshot(self) -> dict:
        queue = [e.summary() for e in self._store.entries()]
        return {"queue": queue, "isPrinting": self._is_printing}

    async def wait_idle(self) -> None:
        """Wait until no drain is scheduled or running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()

    def _schedule(self, delay: float = 0.0) -> None:
        task = asyncio.get_running_loop().create_task(self._drain_later(delay))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _drain_later(self, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        await self.drain()
