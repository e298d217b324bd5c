"""Drive a single CUPS photo printer through ``lp`` and ``lpstat``."""
from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging
import os
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from diaryprint.config import PrintServerSettings
from diaryprint.errors import PrintExecutionFailure
from diaryprint.models import PageDescriptor, PrintQueueEntry

logger = logging.getLogger(__name__)

_LPSTAT_TIMEOUT = 5
_LP_TIMEOUT = 10

# Pillow format name -> temp file suffix
_SUFFIXES = {"JPEG": ".jpg", "PNG": ".png", "GIF": ".gif", "BMP": ".bmp", "TIFF": ".tif", "WEBP": ".webp"}


class PrinterDriver:
    """
    Prints diary pages on one CUPS queue, one page at a time.

    Off Linux (or with ``simulate`` forced on) nothing is shelled out: the
    printer always reports ready and printing only checks the staged file
    exists before waiting out the usual settle time.
    """

    def __init__(self, settings: PrintServerSettings) -> None:
        self._settings = settings
        self._temp_dir = Path(settings.temp_dir)

    @property
    def simulated(self) -> bool:
        return self._settings.simulated

    @property
    def temp_dir(self) -> Path:
        return self._temp_dir

    async def initialize(self) -> None:
        self._temp_dir.mkdir(parents=True, exist_ok=True)
        status = await self.check_printer_status()
        if status["available"]:
            logger.info("Printer %s ready (%s)", self._settings.printer_name, status["message"])
        else:
            logger.warning("Printer %s unavailable: %s", self._settings.printer_name, status["message"])

    def cleanup(self) -> None:
        """Remove staged page files left behind in the temp dir."""
        if not self._temp_dir.is_dir():
            return
        for path in self._temp_dir.iterdir():
            if path.is_file():
                _remove(path)

    async def check_printer_status(self) -> dict:
        if self.simulated:
            return {
                "available": True,
                "message": "Development mode - printer status check skipped",
                "details": "Printing is simulated on this platform",
            }

        try:
            rc, out, err = await self._run(
                ["lpstat", "-p", self._settings.printer_name], timeout=_LPSTAT_TIMEOUT
            )
        except Exception as e:
            logger.exception("lpstat failed for %s", self._settings.printer_name)
            return {
                "available": False,
                "message": "Printer not found or not configured",
                "details": str(e) or type(e).__name__,
            }

        if rc != 0:
            return {
                "available": False,
                "message": "Printer not found or not configured",
                "details": (err or out).strip(),
            }
        if "enabled" in out or "idle" in out:
            return {"available": True, "message": "Printer is ready", "details": out.strip()}
        return {"available": False, "message": "Printer is not ready", "details": out.strip()}

    async def print_diary(self, entry: PrintQueueEntry) -> None:
        """Print every page of ``entry`` in order; the first failure aborts the job."""
        total = len(entry.pages)
        logger.info("Printing diary %r for job %s (%d page(s))", entry.title, entry.job_id, total)

        for index, page in enumerate(entry.pages):
            logger.info("Job %s: page %d (%d/%d)", entry.job_id, page.page_number, index + 1, total)
            # Decoding, verifying and writing a page can take seconds for large images
            path = await asyncio.to_thread(self._stage_page, entry.job_id, page)
            try:
                await self.print_image(path)
            finally:
                await asyncio.to_thread(_remove, path)

            if index < total - 1:
                await asyncio.sleep(self._settings.page_interval)

        logger.info("Job %s: all %d page(s) printed", entry.job_id, total)

    async def print_image(self, file_path: Path) -> None:
        if self.simulated:
            if not file_path.is_file():
                raise PrintExecutionFailure(f"Print failed: file not found: {file_path}")
            logger.info("Simulating print of %s", file_path)
            await asyncio.sleep(self._settings.settle_time)
            return

        cmd = self.lp_command(file_path)
        logger.info("Running %s", " ".join(cmd))
        try:
            rc, out, err = await self._run(cmd, timeout=_LP_TIMEOUT)
        except asyncio.TimeoutError as e:
            raise PrintExecutionFailure(f"Print failed: lp timed out after {_LP_TIMEOUT}s") from e
        except Exception as e:
            raise PrintExecutionFailure(f"Print failed: {e}") from e

        if rc != 0:
            raise PrintExecutionFailure(f"Print failed: lp exited with {rc}: {(err or out).strip()}")
        if err.strip():
            logger.warning("lp stderr: %s", err.strip())
        logger.info("lp accepted %s: %s", file_path.name, out.strip())

        # The spooler accepting the job is not the page leaving the printer
        await asyncio.sleep(self._settings.settle_time)

    def lp_command(self, file_path: Path) -> list[str]:
        return [
            "lp",
            "-d", self._settings.printer_name,
            "-o", f"media={self._settings.paper_size}",
            "-o", f"quality={self._settings.print_quality}",
            str(file_path),
        ]

    def _stage_page(self, job_id: str, page: PageDescriptor) -> Path:
        """Decode a page to a temp file Pillow can read back."""
        try:
            data = base64.b64decode(page.image_data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise PrintExecutionFailure(f"Page {page.page_number}: invalid base64 image data") from e

        try:
            with Image.open(io.BytesIO(data)) as img:
                fmt = img.format
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise PrintExecutionFailure(f"Page {page.page_number}: unreadable image ({e})") from e

        suffix = _SUFFIXES.get(fmt or "", ".img")
        path = self._temp_dir / f"print_{job_id}_page{page.page_number}{suffix}"
        try:
            self._temp_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            _remove(path)
            raise PrintExecutionFailure(f"Page {page.page_number}: cannot write {path}: {e}") from e
        logger.debug("Staged page %d at %s (%d bytes)", page.page_number, path, len(data))
        return path

    async def _run(self, cmd: list[str], timeout: float) -> tuple[int, str, str]:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=self._env(),
        )
        try:
            out, err = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise
        return proc.returncode, out.decode(errors="replace"), err.decode(errors="replace")

    def _env(self) -> Optional[dict]:
        # lp and lpstat pick up a remote CUPS server from the environment
        if not self._settings.cups_server:
            return None
        return {**os.environ, "CUPS_SERVER": self._settings.cups_server}


def _remove(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.exception("Failed to delete temp file %s", path)
