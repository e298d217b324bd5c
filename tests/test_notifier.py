import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from diaryprint.printserver.services.notifier import CompletionNotifier


@pytest.mark.asyncio
async def test_notify_posts_completion():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"success": True})

    notifier = CompletionNotifier("http://backend.test/", transport=httpx.MockTransport(handler))
    assert await notifier.notify("print_1_abc", True) is True
    assert seen == [("/api/print/complete", {"jobId": "print_1_abc", "success": True, "error": None})]


@pytest.mark.asyncio
async def test_notify_backend_down_is_swallowed():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    notifier = CompletionNotifier("http://backend.test", transport=httpx.MockTransport(handler))
    assert await notifier.notify("print_1_abc", False, "paper jam") is False


@pytest.mark.asyncio
async def test_notify_is_one_shot_by_default():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, json={"success": False})

    notifier = CompletionNotifier("http://backend.test", transport=httpx.MockTransport(handler))
    assert await notifier.notify("print_1_abc", True) is False
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_notify_retries_with_backoff():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503, json={"success": False})
        return httpx.Response(200, json={"success": True})

    notifier = CompletionNotifier(
        "http://backend.test", retries=3, backoff=0.5, transport=httpx.MockTransport(handler)
    )
    with patch("diaryprint.printserver.services.notifier.asyncio.sleep", AsyncMock()) as sleep:
        assert await notifier.notify("print_1_abc", True) is True
    assert len(calls) == 3
    assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0]


@pytest.mark.asyncio
async def test_notify_does_not_retry_unknown_job():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404, json={"success": False, "error": "Print job not found"})

    notifier = CompletionNotifier("http://backend.test", retries=3, transport=httpx.MockTransport(handler))
    assert await notifier.notify("print_1_abc", True) is False
    assert len(calls) == 1
