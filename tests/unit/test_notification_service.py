"""
Unit Tests for Telegram plan delivery

✅ Posts the plan to the Bot API sendMessage endpoint
✅ Skips delivery when disabled or unconfigured
✅ Logs and swallows HTTP and transport failures
"""

import json
import pytest
from decimal import Decimal

import httpx

from smart_dca.domain.models import DCARecommendation
from smart_dca.services.notification_service import TelegramNotifier, format_plan_message

RECOMMENDATIONS = [
    DCARecommendation(
        portfolio_id=1, month="2024-06", symbol="AAA",
        amount=Decimal("550.00"), weight=Decimal("55.0000"),
        reason="Price is below its trailing average, increasing DCA weight slightly",
    ),
    DCARecommendation(
        portfolio_id=1, month="2024-06", symbol="BBB",
        amount=Decimal("450.00"), weight=Decimal("45.0000"),
        reason="No significant adjustment needed, maintaining target weight",
    ),
]


class RecordingTransport(httpx.AsyncBaseTransport):
    """Captures requests and answers with a fixed status"""

    def __init__(self, status_code=200, error=None):
        self.status_code = status_code
        self.error = error
        self.requests = []

    async def handle_async_request(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return httpx.Response(self.status_code, json={"ok": self.status_code == 200})


def make_notifier(transport, enabled=True, token="123:abc", chat_id="42"):
    return TelegramNotifier(
        token=token, chat_id=chat_id, enabled=enabled, timeout=5.0, transport=transport
    )


def test_plan_message_lists_every_line():
    text = format_plan_message("Core", "2024-06", RECOMMENDATIONS, buy_day=2)

    assert text.startswith("DCA plan 2024-06\nCore\nTotal: 1000.00")
    assert "AAA: 550.00 (55.00%)" in text
    assert "BBB: 450.00 (45.00%)" in text
    assert text.endswith("Buy on day 2 of the month.")


class TestTelegramNotifier:

    @pytest.mark.asyncio
    async def test_posts_to_send_message(self):
        transport = RecordingTransport()
        sent = await make_notifier(transport).send_message("hello")

        assert sent is True
        request = transport.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.telegram.org/bot123:abc/sendMessage"
        assert json.loads(request.content) == {"chat_id": "42", "text": "hello"}

    @pytest.mark.asyncio
    async def test_disabled_sends_nothing(self):
        transport = RecordingTransport()
        assert await make_notifier(transport, enabled=False).send_message("hello") is False
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_missing_chat_id_sends_nothing(self):
        transport = RecordingTransport()
        assert await make_notifier(transport, chat_id="").send_message("hello") is False
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_http_error_returns_false(self):
        transport = RecordingTransport(status_code=500)
        assert await make_notifier(transport).send_message("hello") is False
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_transport_error_returns_false(self):
        transport = RecordingTransport(error=httpx.ConnectError("telegram down"))
        assert await make_notifier(transport).send_message("hello") is False
