"""Tests for chunked notification delivery and the Telegram transport."""

import httpx
import pytest

from stockpulse.notify.dispatcher import NotificationDispatcher, split_message
from stockpulse.notify.telegram import TelegramTransport, TransportError


class FakeTransport:
    def __init__(self, fail_on=None):
        self.sent = []
        self.fail_on = fail_on

    async def send_text(self, recipient, text):
        if self.fail_on is not None and len(self.sent) == self.fail_on:
            raise TransportError("boom")
        self.sent.append((recipient, text))


class Timeline:
    """Records sends and sleeps in the order they happen."""

    def __init__(self, transport):
        self.events = []
        self.transport = transport

    async def sleep(self, seconds):
        self.events.append(("sleep", seconds))

    async def send_text(self, recipient, text):
        self.events.append(("send", len(text)))
        await self.transport.send_text(recipient, text)


class TestSplitMessage:
    def test_exact_chunks(self):
        chunks = split_message("x" * 9000, 3800)
        assert [len(c) for c in chunks] == [3800, 3800, 1400]
        assert "".join(chunks) == "x" * 9000

    def test_short_message_is_one_chunk(self):
        assert split_message("hello", 3800) == ["hello"]

    def test_empty_message(self):
        assert split_message("", 3800) == []

    def test_cuts_mid_word(self):
        assert split_message("abcdef", 4) == ["abcd", "ef"]

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            split_message("abc", 0)


@pytest.mark.asyncio
async def test_sends_in_order_with_pacing():
    transport = FakeTransport()
    timeline = Timeline(transport)
    dispatcher = NotificationDispatcher(timeline, "chat", chunk_limit=3800, pacing_delay=1.5, sleep=timeline.sleep)

    message = "a" * 3800 + "b" * 3800 + "c" * 1400
    assert await dispatcher.send(message) == 3

    assert timeline.events == [
        ("send", 3800), ("sleep", 1.5), ("send", 3800), ("sleep", 1.5), ("send", 1400),
    ]
    assert [text[0] for _, text in transport.sent] == ["a", "b", "c"]
    assert all(recipient == "chat" for recipient, _ in transport.sent)


@pytest.mark.asyncio
async def test_failure_aborts_remaining_chunks():
    transport = FakeTransport(fail_on=1)
    timeline = Timeline(transport)
    dispatcher = NotificationDispatcher(timeline, "chat", chunk_limit=10, pacing_delay=1, sleep=timeline.sleep)

    with pytest.raises(TransportError):
        await dispatcher.send("x" * 35)
    assert len(transport.sent) == 1
    assert [e for e in timeline.events if e[0] == "send"] == [("send", 10), ("send", 10)]


class TestTelegramTransport:
    @pytest.mark.asyncio
    async def test_posts_send_message(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = request.content
            return httpx.Response(200, json={"ok": True, "result": {}})

        transport = TelegramTransport("TOKEN", transport=httpx.MockTransport(handler))
        await transport.send_text("42", "hello")
        assert seen["url"] == "https://api.telegram.org/botTOKEN/sendMessage"
        assert b'"chat_id":"42"' in seen["body"].replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_http_error_raises_transport_error(self):
        transport = TelegramTransport(
            "TOKEN", transport=httpx.MockTransport(lambda r: httpx.Response(429, json={"ok": False})),
        )
        with pytest.raises(TransportError):
            await transport.send_text("42", "hello")

    @pytest.mark.asyncio
    async def test_not_ok_raises_transport_error(self):
        transport = TelegramTransport(
            "TOKEN",
            transport=httpx.MockTransport(
                lambda r: httpx.Response(200, json={"ok": False, "description": "chat not found"})
            ),
        )
        with pytest.raises(TransportError, match="chat not found"):
            await transport.send_text("42", "hello")
