"""Tests for ExpoPushService."""

import json

import httpx
import pytest

from rivnitz_live.app_config import AppEnvironConfig
from rivnitz_live.services.integrations.expo_push_service import (
    NO_DEVICES_MESSAGE,
    ExpoPushService,
)
from rivnitz_live.utils.app_errors import AppError, AppErrorCode


def tokens_of(count: int):
    async def source() -> list[str]:
        return [f"ExponentPushToken[{i}]" for i in range(count)]

    return source


def make_service(handler=None, *, count: int = 3, demo: bool = False) -> ExpoPushService:
    transport = httpx.MockTransport(handler) if handler else None
    return ExpoPushService(
        AppEnvironConfig(DEMO_MODE=demo, PUSH_BATCH_SIZE=100),
        token_source=tokens_of(count),
        transport=transport,
    )


class TestBuildMessages:
    def test_message_shape(self):
        """Should address each token with the live screen deep link."""
        service = make_service()

        messages = service.build_messages(["tok-a"], "Evening shiur", "sess-1")

        assert messages == [
            {
                "to": "tok-a",
                "channelId": "live",
                "title": service._cfg.PUSH_LIVE_TITLE,
                "body": "Evening shiur",
                "data": {"screen": "Live", "sessionId": "sess-1"},
                "sound": "default",
                "priority": "high",
            }
        ]

    def test_blank_title_uses_default_body(self):
        service = make_service()

        messages = service.build_messages(["tok-a"], "", "sess-1")

        assert messages[0]["body"] == service._cfg.PUSH_LIVE_DEFAULT_BODY


class TestNotifyLive:
    async def test_sends_in_batches_of_100(self):
        """Should split 250 devices into 3 POSTs."""
        batches = []

        def handler(request: httpx.Request) -> httpx.Response:
            batch = json.loads(request.content)
            batches.append(len(batch))
            return httpx.Response(200, json={"data": [{"status": "ok"}] * len(batch)})

        result = await make_service(handler, count=250).notify_live("Evening shiur", "sess-1")

        assert batches == [100, 100, 50]
        assert result.sent == 250
        assert len(result.results) == 3
        assert result.message is None

    async def test_no_devices(self):
        def handler(request: httpx.Request) -> httpx.Response:
            pytest.fail("no request expected")

        result = await make_service(handler, count=0).notify_live("Evening shiur", "sess-1")

        assert result.sent == 0
        assert result.message == NO_DEVICES_MESSAGE

    async def test_demo_mode_sends_nothing(self):
        def handler(request: httpx.Request) -> httpx.Response:
            pytest.fail("no request expected")

        result = await make_service(handler, demo=True).notify_live("Evening shiur", "sess-1")

        assert result.sent == 0

    async def test_rejected_batch_kept_in_results(self):
        """Should return a rejected batch's error body and still send the other batches."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(len(json.loads(request.content)))
            if len(calls) == 1:
                return httpx.Response(400, json={"errors": [{"code": "VALIDATION_ERROR"}]})
            return httpx.Response(200, json={"data": [{"status": "ok"}]})

        result = await make_service(handler, count=150).notify_live("Evening shiur", "sess-1")

        assert calls == [100, 50]
        assert result.sent == 150
        assert result.results == [
            {"errors": [{"code": "VALIDATION_ERROR"}]},
            {"data": [{"status": "ok"}]},
        ]

    async def test_non_json_error_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        result = await make_service(handler).notify_live("Evening shiur", "sess-1")

        assert result.results == [{"status": 502, "error": "Bad Gateway"}]

    async def test_relay_unreachable(self):
        """Should raise E_PUSH_FAILED when Expo cannot be reached."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(AppError) as exc_info:
            await make_service(handler).notify_live("Evening shiur", "sess-1")

        assert exc_info.value.errcode == AppErrorCode.E_PUSH_FAILED.value
        assert exc_info.value.status_code == 502
