"""
Event sinks.

- PubSubSink: Google Pub/Sub REST publisher (emulator aware)
- LogSink: structured log output for local development
"""

from ..config import Settings
from ..core.exceptions import ConfigurationError
from .base import EventSink, PublishResult
from .log_sink import LogSink
from .pubsub import PubSubSink


def build_sink(settings: Settings) -> EventSink:
    """Create the sink selected by ``settings.sink.backend``."""
    backend = settings.sink.backend.lower()

    if backend == "pubsub":
        return PubSubSink(settings.pubsub)
    if backend == "log":
        return LogSink()

    raise ConfigurationError(
        f"Unknown sink backend '{settings.sink.backend}'",
        details={"supported": ["pubsub", "log"]},
    )


__all__ = ["EventSink", "PublishResult", "LogSink", "PubSubSink", "build_sink"]
