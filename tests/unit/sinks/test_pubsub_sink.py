"""
Tests for the event sinks.

The Pub/Sub sink is exercised against a local aiohttp server standing in
for the Pub/Sub REST API (as the emulator would).
"""

import asyncio
import base64
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from apilogger.config import PubSubSettings, Settings, SinkSettings
from apilogger.core.exceptions import ConfigurationError
from apilogger.models.log_event import LogEvent
from apilogger.sinks import LogSink, PubSubSink, build_sink


def make_event() -> LogEvent:
    return LogEvent(
        request_id="req-1",
        service="test-service",
        url="/v1/items",
        method="POST",
        response_code=201,
        request_body='{"email":"***REDACTED***"}',
        duration=0.01,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class FakePubSub:
    """Minimal topics.publish endpoint."""

    def __init__(self, status: int = 200, delay: float = 0.0) -> None:
        self.status = status
        self.delay = delay
        self.requests: List[Dict[str, Any]] = []

    async def publish(self, request: web.Request) -> web.Response:
        self.requests.append({
            "project": request.match_info["project"],
            "topic": request.match_info["topic"],
            "headers": dict(request.headers),
            "body": await request.json(),
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.status != 200:
            return web.json_response({"error": {"message": "topic not found"}}, status=self.status)
        return web.json_response({"messageIds": ["msg-42"]})

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/v1/projects/{project}/topics/{topic}", self.publish)
        return app


async def start_fake(fake: FakePubSub) -> TestServer:
    server = TestServer(fake.app())
    await server.start_server()
    return server


def sink_settings(server: TestServer, **overrides: Any) -> PubSubSettings:
    return PubSubSettings(
        project_id="test-project",
        topic="api-log-events",
        emulator_host=f"{server.host}:{server.port}",
        **overrides,
    )


class TestPubSubSink:
    """Test publishing over the Pub/Sub REST API."""

    @pytest.mark.asyncio
    async def test_publishes_base64_encoded_event(self) -> None:
        fake = FakePubSub()
        server = await start_fake(fake)
        sink = PubSubSink(sink_settings(server))
        event = make_event()

        try:
            result = await sink.publish(event)
        finally:
            await sink.close()
            await server.close()

        assert result.success is True
        assert result.message_id == "msg-42"

        request = fake.requests[0]
        assert request["project"] == "test-project"
        assert request["topic"] == "api-log-events:publish"
        data = request["body"]["messages"][0]["data"]
        assert base64.b64decode(data) == event.to_wire()
        assert json.loads(base64.b64decode(data))["request_id"] == "req-1"

    @pytest.mark.asyncio
    async def test_error_status_reported_as_failure(self) -> None:
        fake = FakePubSub(status=404)
        server = await start_fake(fake)
        sink = PubSubSink(sink_settings(server))

        try:
            result = await sink.publish(make_event())
        finally:
            await sink.close()
            await server.close()

        assert result.success is False
        assert result.error_message.startswith("Pub/Sub returned 404")
        assert "topic not found" in result.error_message

    @pytest.mark.asyncio
    async def test_timeout_reported_as_failure(self) -> None:
        fake = FakePubSub(delay=1.0)
        server = await start_fake(fake)
        sink = PubSubSink(sink_settings(server, timeout_seconds=0.1))

        try:
            result = await sink.publish(make_event())
        finally:
            await sink.close()
            await server.close()

        assert result.success is False
        assert result.error_message.startswith("Publish timed out")

    @pytest.mark.asyncio
    async def test_access_token_sent_as_bearer(self) -> None:
        fake = FakePubSub()
        server = await start_fake(fake)
        sink = PubSubSink(sink_settings(server, access_token="tok-123"))

        try:
            await sink.publish(make_event())
        finally:
            await sink.close()
            await server.close()

        assert fake.requests[0]["headers"]["Authorization"] == "Bearer tok-123"

    @pytest.mark.asyncio
    async def test_token_file_reread_on_each_publish(self, tmp_path: Path) -> None:
        token_file = tmp_path / "token"
        token_file.write_text("first-token\n")
        fake = FakePubSub()
        server = await start_fake(fake)
        sink = PubSubSink(
            sink_settings(server, access_token="static", access_token_file=str(token_file))
        )

        try:
            await sink.publish(make_event())
            token_file.write_text("rotated-token\n")
            await sink.publish(make_event())
        finally:
            await sink.close()
            await server.close()

        assert [r["headers"]["Authorization"] for r in fake.requests] == [
            "Bearer first-token",
            "Bearer rotated-token",
        ]

    @pytest.mark.asyncio
    async def test_unreadable_token_file_reported_as_failure(self, tmp_path: Path) -> None:
        fake = FakePubSub()
        server = await start_fake(fake)
        sink = PubSubSink(sink_settings(server, access_token_file=str(tmp_path / "missing")))

        try:
            result = await sink.publish(make_event())
        finally:
            await sink.close()
            await server.close()

        assert result.success is False
        assert result.error_message.startswith("Cannot read access token file")
        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_unreachable_endpoint_reported_as_failure(self) -> None:
        sink = PubSubSink(PubSubSettings(emulator_host="127.0.0.1:1", timeout_seconds=2))

        try:
            result = await sink.publish(make_event())
        finally:
            await sink.close()

        assert result.success is False
        assert result.error_message

    @pytest.mark.asyncio
    async def test_publish_after_close_fails(self) -> None:
        fake = FakePubSub()
        server = await start_fake(fake)
        sink = PubSubSink(sink_settings(server))

        try:
            await sink.publish(make_event())
            assert await sink.close() is True

            result = await sink.publish(make_event())
        finally:
            await server.close()

        assert result.success is False
        assert result.error_message == "Pub/Sub sink closed"
        assert len(fake.requests) == 1
        assert sink.session is None

    def test_publish_url_uses_emulator_when_configured(self) -> None:
        settings = PubSubSettings(project_id="p", topic="t", emulator_host="localhost:8085")

        assert settings.publish_url == "http://localhost:8085/v1/projects/p/topics/t:publish"

    def test_publish_url_defaults_to_public_api(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("PUBSUB_EMULATOR_HOST", raising=False)
        monkeypatch.delenv("APILOGGER_PUBSUB_EMULATOR_HOST", raising=False)

        settings = PubSubSettings(project_id="p", topic="t")

        assert settings.publish_url == "https://pubsub.googleapis.com/v1/projects/p/topics/t:publish"


class TestLogSink:

    @pytest.mark.asyncio
    async def test_always_succeeds(self) -> None:
        sink = LogSink()

        result = await sink.publish(make_event())

        assert result.success is True
        assert await sink.close() is True


class TestBuildSink:
    """Test sink selection from settings."""

    def test_selects_log_sink(self) -> None:
        assert isinstance(build_sink(Settings(sink=SinkSettings(backend="log"))), LogSink)

    def test_selects_pubsub_sink(self) -> None:
        assert isinstance(build_sink(Settings(sink=SinkSettings(backend="PubSub"))), PubSubSink)

    def test_unknown_backend_rejected(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            build_sink(Settings(sink=SinkSettings(backend="kafka")))

        assert exc_info.value.error_code == "configuration_error"
