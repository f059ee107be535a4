"""
HTTP logging pipeline.

For every request that is not skipped:
1. Capture the request body (and replay it to the application)
2. Record the response through a transparent ``send`` proxy
3. Derive route metadata from the matched route
4. Redact both bodies
5. Assemble a LogEvent and hand it to the emitter

Nothing in this stage can alter or fail the client response.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Optional

import structlog
from starlette.types import ASGIApp, Receive, Scope, Send

from .context import get_request_context
from .emitter import EventEmitter, build_log_event
from .metrics import MetricsCollector
from .recorder import RequestCapture, ResponseRecorder
from .redaction import Redactor
from .routes import extract_route_metadata
from .skip import SkipFilter

logger = structlog.get_logger(__name__)


def request_url(scope: Scope) -> str:
    """Path plus query string, as received."""
    raw_path = scope.get("raw_path")
    if raw_path:
        path = raw_path.split(b"?", 1)[0].decode("latin-1")
    else:
        path = scope.get("path", "")
    query = scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path


class LoggingMiddleware:
    """
    ASGI middleware capturing each exchange and emitting a log event.

    All collaborators are injected; nothing is looked up globally.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        service_name: str,
        emitter: EventEmitter,
        redactor: Redactor,
        skip_filter: SkipFilter,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.app = app
        self.service_name = service_name
        self.emitter = emitter
        self.redactor = redactor
        self.skip_filter = skip_filter
        self.metrics = metrics

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope["method"]
        if self.skip_filter.should_skip(method, scope["path"]):
            await self.app(scope, receive, send)
            return

        created_at = datetime.now(timezone.utc)
        start = time.perf_counter()

        capture = RequestCapture(receive)
        await capture.read()
        recorder = ResponseRecorder(send)

        try:
            await self.app(scope, capture.receive, recorder.send)
        except (Exception, asyncio.CancelledError):
            # Raised or cancelled before responding: recorded as 500
            if not recorder.started:
                recorder.status_code = 500
            raise
        finally:
            duration = time.perf_counter() - start
            self._emit(scope, capture, recorder, created_at, duration)

    def _emit(
        self,
        scope: Scope,
        capture: RequestCapture,
        recorder: ResponseRecorder,
        created_at: datetime,
        duration: float,
    ) -> None:
        try:
            route = extract_route_metadata(scope.get("route"))

            event = build_log_event(
                service=self.service_name,
                context=get_request_context(scope),
                method=scope["method"],
                url=request_url(scope),
                response_code=recorder.status_code,
                request_body=self.redactor.redact(capture.body),
                response_body=self.redactor.redact(recorder.body),
                route=route,
                duration=duration,
                created_at=created_at,
            )

            if self.metrics:
                self.metrics.record_request(
                    method=event.method,
                    route=route.name,
                    status_code=event.response_code,
                    duration_seconds=duration,
                )

            self.emitter.emit(event)

        except Exception as e:
            logger.error(
                "Failed to assemble API log event",
                path=scope.get("path"),
                method=scope.get("method"),
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
