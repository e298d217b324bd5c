"""HTTP client for the remote print server."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from diaryprint.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class PrintServerClient:
    def __init__(
        self,
        base_url: str,
        dispatch_timeout: float = 30.0,
        status_timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._dispatch_timeout = dispatch_timeout
        self._status_timeout = status_timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    async def submit(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Hand a job to the print server.

        Returns the acceptance body. Raises UpstreamUnavailable when the server
        cannot be reached in time, answers with an error status, or reports
        ``success: false``.
        """
        body = await self._request("POST", "/api/print", self._dispatch_timeout, json=payload)
        if not body.get("success"):
            raise UpstreamUnavailable(body.get("error") or body.get("message") or "Print server rejected the job")
        return body

    async def printer_status(self) -> Dict[str, Any]:
        return await self._request("GET", "/api/printer/status", self._status_timeout, allow_error=True)

    async def _request(
        self,
        method: str,
        path: str,
        timeout: float,
        allow_error: bool = False,
        **kwargs,
    ) -> Dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise UpstreamUnavailable(f"Print server timed out after {timeout:g}s") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Cannot reach print server at {self._base_url}: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            raise UpstreamUnavailable(f"Print server returned HTTP {response.status_code} without a JSON body")

        if response.is_error and not allow_error:
            message = body.get("error") or body.get("message") or f"HTTP {response.status_code}"
            raise UpstreamUnavailable(f"Print server returned HTTP {response.status_code}: {message}")
        return body
