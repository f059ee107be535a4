"""
Request identifier enrichment.

Assigns (or propagates) the request ID, reads the caller's user ID and
stores both in the request context. The effective request ID is echoed
back on every response so clients can correlate their logs.
"""

import secrets
from typing import Any, Dict

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .context import RequestContext, set_request_context

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
USER_ID_HEADER = "X-User-ID"
REQUEST_ID_BYTES = 16


def generate_request_id() -> str:
    """
    Generate a random 32 character hex request ID.

    Returns an empty string if the system random source is unavailable,
    letting the request continue without an identifier.
    """
    try:
        return secrets.token_hex(REQUEST_ID_BYTES)
    except (OSError, NotImplementedError) as e:
        logger.error("Failed to generate request ID", error=str(e))
        return ""


def resolve_identifiers(headers: Headers) -> RequestContext:
    """Build the request context from inbound headers."""
    request_id = headers.get(REQUEST_ID_HEADER, "")
    if not request_id:
        request_id = generate_request_id()

    # Headers.get returns the first value when the header repeats
    user_id = headers.get(USER_ID_HEADER, "")

    return RequestContext(request_id=request_id, user_id=user_id)


class IdentifierMiddleware:
    """
    ASGI middleware populating the request context.

    Runs for every HTTP request, including those the logging stage skips.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        context = resolve_identifiers(Headers(scope=scope))
        set_request_context(scope, context)

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start" and context.request_id:
                message.setdefault("headers", [])
                headers = MutableHeaders(scope=message)
                headers[REQUEST_ID_HEADER] = context.request_id
            await send(message)

        bound: Dict[str, Any] = {"request_id": context.request_id}
        if context.user_id:
            bound["user_id"] = context.user_id

        with structlog.contextvars.bound_contextvars(**bound):
            await self.app(scope, receive, send_with_request_id)
