"""
Per-request identity context.

The context is created once by the identifier middleware and stored in the
ASGI scope's ``state`` mapping, which is what ``request.state`` reads from.
"""

from dataclasses import dataclass
from typing import Any, MutableMapping

_STATE_KEY = "request_context"


@dataclass(frozen=True)
class RequestContext:
    """Identifiers attached to one in-flight request."""

    request_id: str = ""
    user_id: str = ""


EMPTY_CONTEXT = RequestContext()


def set_request_context(scope: MutableMapping[str, Any], context: RequestContext) -> None:
    """Attach the context to an ASGI scope."""
    state = scope.setdefault("state", {})
    state[_STATE_KEY] = context


def get_request_context(scope: MutableMapping[str, Any]) -> RequestContext:
    """Return the context attached to a scope, or an empty one."""
    state = scope.get("state") or {}
    context = state.get(_STATE_KEY)
    if isinstance(context, RequestContext):
        return context
    return EMPTY_CONTEXT
