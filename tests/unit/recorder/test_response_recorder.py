"""
Tests for the response recorder and request body capture.
"""

from typing import Any, Dict, List

import pytest

from apilogger.core.recorder import RequestCapture, ResponseRecorder, decode_body


class FakeSend:
    """Collects forwarded ASGI messages."""

    def __init__(self, fail_on_body: bool = False) -> None:
        self.messages: List[Dict[str, Any]] = []
        self.fail_on_body = fail_on_body

    async def __call__(self, message: Dict[str, Any]) -> None:
        if self.fail_on_body and message["type"] == "http.response.body":
            raise OSError("client went away")
        self.messages.append(message)

    @property
    def body(self) -> bytes:
        return b"".join(
            m.get("body", b"") for m in self.messages if m["type"] == "http.response.body"
        )


def make_receive(messages: List[Dict[str, Any]]):
    queue = list(messages)

    async def receive() -> Dict[str, Any]:
        if queue:
            return queue.pop(0)
        return {"type": "http.disconnect"}

    return receive


class TestResponseRecorder:
    """Test transparent recording of outbound messages."""

    @pytest.mark.asyncio
    async def test_captures_status_and_body(self) -> None:
        real_send = FakeSend()
        recorder = ResponseRecorder(real_send)

        await recorder.send({"type": "http.response.start", "status": 201, "headers": []})
        await recorder.send({"type": "http.response.body", "body": b"test response body"})

        assert recorder.status_code == 201
        assert recorder.started is True
        assert recorder.body == b"test response body"
        assert real_send.body == b"test response body"

    @pytest.mark.asyncio
    async def test_defaults_to_200(self) -> None:
        recorder = ResponseRecorder(FakeSend())

        assert recorder.status_code == 200
        assert recorder.started is False

    @pytest.mark.asyncio
    async def test_buffer_matches_forwarded_bytes_across_chunks(self) -> None:
        real_send = FakeSend()
        recorder = ResponseRecorder(real_send)
        chunks = [b'{"items": [', b"", b'{"id": "1"}', b"]}"]

        await recorder.send({"type": "http.response.start", "status": 200, "headers": []})
        for chunk in chunks:
            await recorder.send({"type": "http.response.body", "body": chunk, "more_body": True})
        await recorder.send({"type": "http.response.body"})

        assert recorder.body == real_send.body == b"".join(chunks)

    @pytest.mark.asyncio
    async def test_forwards_messages_unchanged_and_in_order(self) -> None:
        real_send = FakeSend()
        recorder = ResponseRecorder(real_send)
        messages = [
            {"type": "http.response.start", "status": 200, "headers": [(b"content-type", b"text/plain")]},
            {"type": "http.response.body", "body": b"a", "more_body": True},
            {"type": "http.response.body", "body": b"b", "more_body": False},
        ]

        for message in messages:
            await recorder.send(message)

        assert real_send.messages == messages
        assert all(sent is original for sent, original in zip(real_send.messages, messages))

    @pytest.mark.asyncio
    async def test_last_status_wins(self) -> None:
        recorder = ResponseRecorder(FakeSend())

        await recorder.send({"type": "http.response.start", "status": 200, "headers": []})
        await recorder.send({"type": "http.response.start", "status": 404, "headers": []})

        assert recorder.status_code == 404

    @pytest.mark.asyncio
    async def test_real_send_errors_propagate(self) -> None:
        recorder = ResponseRecorder(FakeSend(fail_on_body=True))
        await recorder.send({"type": "http.response.start", "status": 200, "headers": []})

        with pytest.raises(OSError):
            await recorder.send({"type": "http.response.body", "body": b"lost"})


class TestRequestCapture:
    """Test buffering and replaying the request body."""

    @pytest.mark.asyncio
    async def test_reads_chunked_body_and_replays_once(self) -> None:
        capture = RequestCapture(make_receive([
            {"type": "http.request", "body": b'{"name":', "more_body": True},
            {"type": "http.request", "body": b'"test"}', "more_body": False},
        ]))

        assert await capture.read() == b'{"name":"test"}'

        replayed = await capture.receive()
        assert replayed == {"type": "http.request", "body": b'{"name":"test"}', "more_body": False}

        # Afterwards the real receive is used again
        assert await capture.receive() == {"type": "http.disconnect"}

    @pytest.mark.asyncio
    async def test_empty_body(self) -> None:
        capture = RequestCapture(make_receive([{"type": "http.request"}]))

        assert await capture.read() == b""
        assert (await capture.receive())["body"] == b""

    @pytest.mark.asyncio
    async def test_disconnect_before_body_complete(self) -> None:
        capture = RequestCapture(make_receive([
            {"type": "http.request", "body": b"partial", "more_body": True},
        ]))

        assert await capture.read() == b"partial"
        assert capture.disconnected is True
        assert await capture.receive() == {"type": "http.disconnect"}


class TestDecodeBody:

    def test_empty_is_none(self) -> None:
        assert decode_body(b"") is None

    def test_invalid_utf8_replaced(self) -> None:
        assert decode_body(b"ok\xff") == "ok�"
