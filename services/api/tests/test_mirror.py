"""
Tests for row write-back forwarders and the background dispatcher.

Run with: pytest tests/test_mirror.py -v
"""
import json
from unittest.mock import MagicMock

import gspread
import httpx
import pytest

from core.mirror import (
    MirrorDispatcher,
    NullForwarder,
    SheetsWriteBackForwarder,
    WebhookForwarder,
    build_forwarder,
)
from settings import Settings


class TestWebhookForwarder:

    @pytest.mark.asyncio
    async def test_posts_row_payload(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        forwarder = WebhookForwarder("https://hooks.test/rows", transport=httpx.MockTransport(handler))
        assert await forwarder.forward(4, ["a@x.com", "v"]) is True

        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"row_index": 4, "row_data": ["a@x.com", "v"]}

    @pytest.mark.asyncio
    async def test_error_status_returns_false(self):
        forwarder = WebhookForwarder(
            "https://hooks.test/rows",
            transport=httpx.MockTransport(lambda r: httpx.Response(500)),
        )
        assert await forwarder.forward(1, ["x"]) is False

    @pytest.mark.asyncio
    async def test_network_error_returns_false(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        forwarder = WebhookForwarder("https://hooks.test/rows", transport=httpx.MockTransport(handler))
        assert await forwarder.forward(1, ["x"]) is False


class TestSheetsWriteBack:

    @pytest.mark.asyncio
    async def test_writes_below_header(self):
        ws = MagicMock(spec=gspread.Worksheet)
        forwarder = SheetsWriteBackForwarder("", "", worksheet=ws)

        assert await forwarder.forward(3, ["a@x.com", "v"]) is True
        ws.update.assert_called_once_with(
            range_name="A4",
            values=[["a@x.com", "v"]],
            value_input_option="RAW",
        )

    @pytest.mark.asyncio
    async def test_failure_returns_false(self):
        ws = MagicMock(spec=gspread.Worksheet)
        ws.update.side_effect = RuntimeError("permission denied")
        forwarder = SheetsWriteBackForwarder("", "", worksheet=ws)
        assert await forwarder.forward(1, ["x"]) is False

    def test_requires_credentials(self):
        with pytest.raises(ValueError):
            SheetsWriteBackForwarder("", "sheet")


class TestDispatcher:

    @pytest.mark.asyncio
    async def test_crashing_forwarder_is_contained(self):
        class Crashing:
            async def forward(self, row_index, row_data):
                raise RuntimeError("boom")

        dispatcher = MirrorDispatcher(Crashing())
        dispatcher.schedule(1, ["x"])
        assert dispatcher.pending == 1
        await dispatcher.wait_for_forwards()
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_defaults_to_null_forwarder(self):
        dispatcher = MirrorDispatcher()
        assert isinstance(dispatcher.forwarder, NullForwarder)
        assert await dispatcher.schedule(1, ["x"]) is True


class TestBuildForwarder:

    def test_none(self):
        assert isinstance(build_forwarder(Settings(mirror_backend="none")), NullForwarder)

    def test_webhook_without_url_is_disabled(self):
        assert isinstance(build_forwarder(Settings(mirror_backend="webhook", webhook_url="")), NullForwarder)

    def test_webhook(self):
        forwarder = build_forwarder(Settings(mirror_backend="webhook", webhook_url="https://hooks.test/x"))
        assert isinstance(forwarder, WebhookForwarder)
        assert forwarder.url == "https://hooks.test/x"

    def test_unknown(self):
        with pytest.raises(ValueError):
            build_forwarder(Settings(mirror_backend="carrier-pigeon"))
