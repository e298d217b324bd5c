"""Read access to diaries and their pre-rendered printable pages.

The diary store itself belongs to the wider application; the print
controller only needs these two lookups.
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from diaryprint.models import Diary, PrintableDiary

logger = logging.getLogger(__name__)


class DiaryRepository(ABC):
    @abstractmethod
    async def get_diary(self, diary_id: str) -> Optional[Diary]: ...

    @abstractmethod
    async def get_printable(self, diary_id: str) -> Optional[PrintableDiary]: ...


class InMemoryDiaryRepository(DiaryRepository):
    def __init__(self) -> None:
        self._diaries: dict[str, Diary] = {}
        self._printable: dict[str, PrintableDiary] = {}

    def add_diary(self, diary: Diary) -> None:
        self._diaries[diary.id] = diary

    def add_printable(self, printable: PrintableDiary) -> None:
        self._printable[printable.diary_id] = printable

    async def get_diary(self, diary_id: str) -> Optional[Diary]:
        return self._diaries.get(diary_id)

    async def get_printable(self, diary_id: str) -> Optional[PrintableDiary]:
        return self._printable.get(diary_id)

    @classmethod
    def from_json(cls, path: Path) -> "InMemoryDiaryRepository":
        """Load ``{"diaries": [...], "printable": [...]}`` records."""
        data = json.loads(Path(path).read_text())
        repo = cls()
        for record in data.get("diaries", []):
            repo.add_diary(Diary.model_validate(record))
        for record in data.get("printable", []):
            repo.add_printable(PrintableDiary.model_validate(record))
        logger.info(
            "Loaded %d diar(ies) and %d printable record(s) from %s",
            len(repo._diaries), len(repo._printable), path,
        )
        return repo
