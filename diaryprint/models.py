"""Wire and record models shared by the backend and the print server.

Field names are snake_case in Python and camelCase on the wire.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self, **kwargs) -> dict:
        return self.model_dump(mode="json", by_alias=True, **kwargs)


class JobStatus(str, Enum):
    PENDING = "pending"
    SENDING = "sending"
    PRINTING = "printing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class EntryStatus(str, Enum):
    QUEUED = "queued"
    PRINTING = "printing"


class PageDescriptor(WireModel):
    """One pre-rendered diary page; ``image_data`` is a base64 raster image."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    page_number: int
    image_data: str


# --- Backend ---


class PrintRequest(WireModel):
    # Optional so that missing ids answer 400 from the controller, not 422
    diary_id: Optional[str] = None
    user_id: Optional[str] = None
    page_numbers: Optional[list[int]] = None


class CompletionNotice(WireModel):
    job_id: Optional[str] = None
    success: bool = False
    error: Optional[str] = None


class PrintJob(WireModel):
    job_id: str
    diary_id: str
    user_id: str
    status: JobStatus = JobStatus.PENDING
    total_pages: int
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None


class Diary(WireModel):
    id: str
    user_id: str
    title: str = ""
    date: Optional[str] = None


class PrintableDiary(WireModel):
    diary_id: str
    pages: list[PageDescriptor] = Field(default_factory=list)
    mime_type: str = "image/jpeg"


# --- Print server ---


class PrintSubmission(WireModel):
    job_id: Optional[str] = None
    diary_id: Optional[str] = None
    title: Optional[str] = None
    date: Optional[str] = None
    pages: Optional[list[PageDescriptor]] = None
    mime_type: Optional[str] = None


class PrintQueueEntry(WireModel):
    job_id: str
    diary_id: Optional[str] = None
    title: Optional[str] = None
    date: Optional[str] = None
    pages: list[PageDescriptor]
    mime_type: Optional[str] = None
    status: EntryStatus = EntryStatus.QUEUED
    created_at: datetime = Field(default_factory=utcnow)

    def summary(self) -> dict:
        """Queue view without the page images."""
        data = self.to_wire(exclude={"pages"})
        data["pageNumbers"] = [p.page_number for p in self.pages]
        return data
