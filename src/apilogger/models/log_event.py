"""
API log event model.

One event describes one completed HTTP exchange. Optional fields are
dropped from the wire format rather than sent as empty strings or null.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LogEvent(BaseModel):
    """
    Immutable record of a request/response pair.

    Field order matches the published wire format.
    """

    request_id: Optional[str] = Field(default=None, description="Effective request identifier")
    service: str = Field(description="Name of the emitting service")
    url: str = Field(description="Request path with query string")
    method: str = Field(description="HTTP method as received")
    response_code: int = Field(description="Final status code written")
    response_body: Optional[str] = Field(default=None, description="Redacted response body")
    request_body: Optional[str] = Field(default=None, description="Redacted request body")
    user_id: Optional[str] = Field(default=None, description="Caller identifier")
    duration: float = Field(ge=0, description="Seconds from entry to handler completion")
    version: str = Field(default="", description="API version from the route template")
    name: str = Field(default="", description="Matched route name")
    created_at: datetime = Field(description="Capture start time")

    model_config = ConfigDict(frozen=True)

    @field_validator("request_id", "response_body", "request_body", "user_id", mode="before")
    def empty_to_none(cls, v: Any) -> Any:
        """Empty optional values are treated as absent."""
        if v == "" or v == b"":
            return None
        return v

    def to_wire(self) -> bytes:
        """JSON encoding published to the sink."""
        return self.model_dump_json(exclude_none=True).encode("utf-8")
