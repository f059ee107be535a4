"""Event sink interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..models.log_event import LogEvent


@dataclass
class PublishResult:
    """Outcome of a single publish attempt."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None


class EventSink(ABC):
    """
    Destination for log events.

    ``publish`` reports failures through its result rather than raising.
    Implementations must tolerate concurrent ``publish`` calls.
    """

    @abstractmethod
    async def publish(self, event: LogEvent) -> PublishResult:
        """Deliver one event."""

    @abstractmethod
    async def close(self) -> bool:
        """Release resources; called once on shutdown. Returns False on an unclean close."""
