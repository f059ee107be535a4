"""
Request and response capture for the logging pipeline.

``ResponseRecorder`` sits between the application and the server's ``send``
callable: every message is forwarded unchanged while a shadow copy of the
body and the status code is kept. ``RequestCapture`` reads the inbound
body up front and replays it to the application.
"""

from typing import List, Optional

from starlette.types import Message, Receive, Send

DEFAULT_STATUS_CODE = 200


class ResponseRecorder:
    """Transparent proxy around an ASGI ``send`` that buffers the response body."""

    def __init__(self, send: Send) -> None:
        self._send = send
        self._body = bytearray()
        self.status_code = DEFAULT_STATUS_CODE
        self.started = False

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    async def send(self, message: Message) -> None:
        message_type = message["type"]

        if message_type == "http.response.start":
            self.status_code = message["status"]
            self.started = True
        elif message_type == "http.response.body":
            self._body.extend(message.get("body", b""))

        await self._send(message)


class RequestCapture:
    """
    Buffers the full request body so it can be logged and still be read
    by the application.
    """

    def __init__(self, receive: Receive) -> None:
        self._receive = receive
        self._replayed = False
        self.body = b""
        self.disconnected = False

    async def read(self) -> bytes:
        """Consume ``http.request`` messages until the body is complete."""
        chunks: List[bytes] = []
        more_body = True
        while more_body:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                self.disconnected = True
                break
            chunks.append(message.get("body", b""))
            more_body = message.get("more_body", False)

        self.body = b"".join(chunks)
        return self.body

    async def receive(self) -> Message:
        """Replay the buffered body once, then defer to the real receive."""
        if not self._replayed:
            self._replayed = True
            if self.disconnected:
                return {"type": "http.disconnect"}
            return {"type": "http.request", "body": self.body, "more_body": False}
        return await self._receive()


def decode_body(body: bytes) -> Optional[str]:
    """Text form of a captured body, or None when empty."""
    if not body:
        return None
    return body.decode("utf-8", errors="replace")
