import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from diaryprint.printserver.main import create_app


def _webhook_recorder(calls):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True})
    return handler


def _job(job_id, page_b64, numbers=(1, 2)):
    return {
        "jobId": job_id,
        "diaryId": "D1",
        "title": "Kyoto in spring",
        "date": "2025-04-02",
        "pages": [{"pageNumber": n, "imageData": page_b64} for n in numbers],
        "mimeType": "image/png",
    }


@pytest.mark.asyncio
async def test_printer_status_ready(print_server_settings):
    app = create_app(settings=print_server_settings, webhook_transport=httpx.MockTransport(_webhook_recorder([])))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/api/printer/status")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["status"] == "ready"
        assert body["queueLength"] == 0
        assert body["isPrinting"] is False


@pytest.mark.asyncio
async def test_printer_status_offline(print_server_settings):
    app = create_app(settings=print_server_settings, webhook_transport=httpx.MockTransport(_webhook_recorder([])))
    unavailable = {"available": False, "message": "Printer is not ready", "details": ""}
    with patch.object(app.state.driver, "check_printer_status", AsyncMock(return_value=unavailable)):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            body = (await client.get("/api/printer/status")).json()
    assert body["status"] == "offline"
    assert body["message"] == "Printer is not ready"


@pytest.mark.asyncio
async def test_print_rejects_empty_pages(print_server_settings):
    app = create_app(settings=print_server_settings, webhook_transport=httpx.MockTransport(_webhook_recorder([])))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.post("/api/print", json={"jobId": "print_1_a", "pages": []})
        assert resp.status_code == 400
        assert resp.json()["success"] is False
        resp = await client.post("/api/print", json={"pages": [{"pageNumber": 1, "imageData": "x"}]})
        assert resp.status_code == 400


@pytest.mark.asyncio
async def test_print_queues_and_reports_completion(print_server_settings, page_b64):
    calls = []
    app = create_app(settings=print_server_settings, webhook_transport=httpx.MockTransport(_webhook_recorder(calls)))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.post("/api/print", json=_job("print_1_a", page_b64))
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Print job queued", "queuePosition": 1}

        await app.state.print_queue.wait_idle()

        queue = (await client.get("/api/queue")).json()
        assert queue == {"success": True, "queue": [], "isPrinting": False}

    assert calls == [{"jobId": "print_1_a", "success": True, "error": None}]
    assert list(print_server_settings.temp_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_bad_page_reports_failure(print_server_settings, page_b64):
    calls = []
    app = create_app(settings=print_server_settings, webhook_transport=httpx.MockTransport(_webhook_recorder(calls)))
    job = _job("print_1_bad", page_b64, numbers=(1, 2, 3))
    job["pages"][1]["imageData"] = "aGVsbG8gd29ybGQ="
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        assert (await client.post("/api/print", json=job)).status_code == 200
        await app.state.print_queue.wait_idle()

    assert len(calls) == 1
    assert calls[0]["success"] is False
    assert "Page 2" in calls[0]["error"]


@pytest.mark.asyncio
async def test_webhook_down_does_not_stall_queue(print_server_settings, page_b64):
    def down(request):
        raise httpx.ConnectError("connection refused", request=request)

    app = create_app(settings=print_server_settings, webhook_transport=httpx.MockTransport(down))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.post("/api/print", json=_job("print_1_a", page_b64))
        await client.post("/api/print", json=_job("print_1_b", page_b64))
        await app.state.print_queue.wait_idle()

        status = (await client.get("/api/printer/status")).json()
        assert status["queueLength"] == 0
        assert status["isPrinting"] is False
