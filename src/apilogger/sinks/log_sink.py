"""Sink writing events to the structured log, for local development."""

import json

import structlog

from ..models.log_event import LogEvent
from .base import EventSink, PublishResult

logger = structlog.get_logger(__name__)


class LogSink(EventSink):
    """Logs every event at info level; never fails."""

    async def publish(self, event: LogEvent) -> PublishResult:
        logger.info("API log event", **json.loads(event.to_wire()))
        return PublishResult(success=True)

    async def close(self) -> bool:
        return True
