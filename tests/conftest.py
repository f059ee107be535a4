"""
Pytest configuration and shared fixtures.

Contains common test fixtures and setup for all test modules.
"""

import asyncio
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from apilogger.config import EmitterSettings, PipelineSettings, Settings, SinkSettings
from apilogger.main import create_app
from apilogger.models.log_event import LogEvent
from apilogger.sinks.base import EventSink, PublishResult


class MemorySink(EventSink):
    """In-memory sink recording every published event."""

    def __init__(self, fail_with: Optional[str] = None, delay: float = 0.0) -> None:
        self.events: List[LogEvent] = []
        self.fail_with = fail_with
        self.delay = delay
        self.closed = False

    async def publish(self, event: LogEvent) -> PublishResult:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.events.append(event)
        if self.fail_with:
            return PublishResult(success=False, error_message=self.fail_with)
        return PublishResult(success=True, message_id=str(len(self.events)))

    async def close(self) -> bool:
        self.closed = True
        return True


@pytest.fixture
def test_settings() -> Settings:
    """Test configuration."""
    return Settings(
        service_name="test-service",
        log_level="DEBUG",
        sink=SinkSettings(backend="log"),
        emitter=EmitterSettings(queue_max_size=100, workers=1, drain_timeout_seconds=5),
        pipeline=PipelineSettings(skip_routes=["GET::/health", "GET::/ready", "GET::/metrics"]),
    )


@pytest.fixture
def memory_sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def test_app(test_settings: Settings, memory_sink: MemorySink) -> FastAPI:
    """Application wired to the in-memory sink."""
    return create_app(settings=test_settings, sink=memory_sink)


@pytest.fixture
def test_client(test_app: FastAPI) -> Generator[TestClient, None, None]:
    """
    FastAPI test client with the lifespan running.

    Events are only guaranteed to be in the sink once the client has been
    closed, since shutdown drains the emitter queue.
    """
    with TestClient(test_app) as client:
        yield client


@pytest.fixture
def sensitive_item() -> Dict[str, Any]:
    """Item creation body with sensitive fields."""
    return {
        "name": "Widget",
        "description": "A widget",
        "email": "a@b.com",
        "phone_number": "+1-555-0100",
        "password": "x",
    }
