from __future__ import annotations

import platform
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DIARYPRINT_", env_file=".env", extra="ignore")

    # Print server
    print_server_url: str = "http://localhost:3002"
    dispatch_timeout: float = 30.0
    status_timeout: float = 5.0

    # Diary records (JSON file seeding the in-memory repository)
    diary_fixtures: Optional[Path] = None

    # Server
    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"

    def model_post_init(self, __context) -> None:
        self.print_server_url = self.print_server_url.rstrip("/")


class PrintServerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PRINTSERVER_", env_file=".env", extra="ignore")

    # Printer (CUPS queue name and lp options)
    printer_name: str = "Photo_Printer"
    paper_size: str = "4x6"
    print_quality: str = "high"
    cups_server: Optional[str] = None

    # Backend webhook
    backend_url: str = "http://localhost:3001"
    webhook_timeout: float = 10.0
    webhook_retries: int = 0
    webhook_backoff: float = 1.0

    # Driver
    temp_dir: Path = Path("temp")
    simulate: Optional[bool] = None

    # Pacing, in seconds
    page_interval: float = 2.0
    settle_time: float = 5.0
    queue_cooldown: float = 1.0

    # Server
    host: str = "0.0.0.0"
    port: int = 3002
    log_level: str = "INFO"

    @property
    def simulated(self) -> bool:
        # Real CUPS only on Linux unless explicitly forced
        if self.simulate is not None:
            return self.simulate
        return platform.system() != "Linux"

    def model_post_init(self, __context) -> None:
        self.backend_url = self.backend_url.rstrip("/")


def get_backend_settings() -> BackendSettings:
    return BackendSettings()


def get_print_server_settings() -> PrintServerSettings:
    return PrintServerSettings()
