"""Report finished print jobs back to the backend's completion webhook."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class CompletionNotifier:
    """
    Best-effort webhook client.

    Delivery failures are logged and never raised. With ``retries=0`` each
    outcome is posted exactly once; otherwise failed posts are retried with
    exponential backoff starting at ``backoff`` seconds.
    """

    def __init__(
        self,
        backend_url: str,
        timeout: float = 10.0,
        retries: int = 0,
        backoff: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = f"{backend_url.rstrip('/')}/api/print/complete"
        self._timeout = timeout
        self._retries = max(retries, 0)
        self._backoff = backoff
        self._transport = transport

    async def notify(self, job_id: str, success: bool, error: Optional[str] = None) -> bool:
        payload = {"jobId": job_id, "success": success, "error": error}

        for attempt in range(self._retries + 1):
            if attempt:
                await asyncio.sleep(self._backoff * 2 ** (attempt - 1))
            try:
                async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                    response = await client.post(self._url, json=payload)
            except httpx.HTTPError as e:
                logger.error("Webhook for %s failed (attempt %d): %s", job_id, attempt + 1, e)
                continue

            if response.is_success:
                logger.info("Webhook sent for %s (success=%s)", job_id, success)
                return True
            logger.error("Webhook for %s rejected: HTTP %d", job_id, response.status_code)
            # The backend does not know this job; retrying will not change that
            if response.status_code == 404:
                break

        logger.warning("Completion of %s was not delivered to %s", job_id, self._url)
        return False
