"""
Pydantic data models package.

Contains:
- The API log event published to the sink
- Demo item API request/response models
"""

from .items import CreateItemRequest, Item
from .log_event import LogEvent

__all__ = [
    # Event models
    "LogEvent",

    # Item models
    "Item",
    "CreateItemRequest",
]
