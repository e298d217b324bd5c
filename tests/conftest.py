from __future__ import annotations

import base64
import io

import pytest
from PIL import Image

from diaryprint.backend.services.diary_repository import InMemoryDiaryRepository
from diaryprint.config import BackendSettings, PrintServerSettings
from diaryprint.models import Diary, PageDescriptor, PrintableDiary


def make_page_b64(color=(200, 120, 40), fmt: str = "PNG") -> str:
    """A small real raster image, base64 encoded."""
    img = Image.new("RGB", (60, 90), color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return base64.b64encode(buf.getvalue()).decode("ascii")


@pytest.fixture
def page_b64() -> str:
    return make_page_b64()


@pytest.fixture
def pages(page_b64) -> list[PageDescriptor]:
    return [PageDescriptor(page_number=n, image_data=page_b64) for n in (1, 2, 3)]


@pytest.fixture
def diaries(pages) -> InMemoryDiaryRepository:
    """Diary D1 owned by U1 with printable pages 1-3; D2 has no printable record."""
    repo = InMemoryDiaryRepository()
    repo.add_diary(Diary(id="D1", user_id="U1", title="Kyoto in spring", date="2025-04-02"))
    repo.add_printable(PrintableDiary(diary_id="D1", pages=pages, mime_type="image/png"))
    repo.add_diary(Diary(id="D2", user_id="U1", title="Unfinished"))
    return repo


@pytest.fixture
def backend_settings() -> BackendSettings:
    return BackendSettings(print_server_url="http://printserver.test", dispatch_timeout=1.0, status_timeout=1.0)


@pytest.fixture
def print_server_settings(tmp_path) -> PrintServerSettings:
    """Simulated printer with every pacing delay switched off."""
    return PrintServerSettings(
        backend_url="http://backend.test",
        temp_dir=tmp_path / "spool",
        simulate=True,
        page_interval=0.0,
        settle_time=0.0,
        queue_cooldown=0.0,
    )
