"""
Event assembly and background dispatch to the sink.

Events are queued without waiting and published by a pool of worker tasks
owned by the application lifespan, so a slow or failing sink never delays a
response and a cancelled request never cancels its event.
"""

import asyncio
import time
from datetime import datetime
from typing import List, Optional

import structlog

from ..config import EmitterSettings
from ..models.log_event import LogEvent
from ..sinks.base import EventSink
from .context import RequestContext
from .metrics import MetricsCollector
from .recorder import decode_body
from .routes import RouteMetadata

logger = structlog.get_logger(__name__)


def build_log_event(
    *,
    service: str,
    context: RequestContext,
    method: str,
    url: str,
    response_code: int,
    request_body: bytes,
    response_body: bytes,
    route: RouteMetadata,
    duration: float,
    created_at: datetime,
) -> LogEvent:
    """Assemble a log event from an already-redacted exchange."""
    return LogEvent(
        request_id=context.request_id or None,
        service=service,
        url=url,
        method=method,
        response_code=response_code,
        response_body=decode_body(response_body),
        request_body=decode_body(request_body),
        user_id=context.user_id or None,
        duration=duration,
        version=route.version,
        name=route.name,
        created_at=created_at,
    )


class EventEmitter:
    """
    Bounded queue plus a dedicated pool of publishing workers.

    Features:
    - Non-blocking ``emit`` (drops and counts when the queue is full)
    - At most one publish attempt per event, no retries
    - Draining shutdown with a timeout
    """

    def __init__(
        self,
        sink: EventSink,
        settings: Optional[EmitterSettings] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.sink = sink
        self.settings = settings or EmitterSettings()
        self.metrics = metrics
        self._queue: Optional["asyncio.Queue[LogEvent]"] = None
        self._workers: List["asyncio.Task[None]"] = []
        self._in_flight = 0
        self._running = False

        logger.info(
            "Event emitter initialized",
            queue_max_size=self.settings.queue_max_size,
            workers=self.settings.workers,
        )

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def queue_depth(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def start(self) -> None:
        """Create the queue and spawn the workers on the running loop."""
        if self._running:
            return

        self._queue = asyncio.Queue(maxsize=self.settings.queue_max_size)
        self._workers = [
            asyncio.create_task(self._run_worker(i), name=f"event-emitter-{i}")
            for i in range(self.settings.workers)
        ]
        self._running = True

        logger.info("Event emitter started", workers=len(self._workers))

    async def stop(self) -> None:
        """Stop accepting events, drain the queue, then cancel the workers."""
        if not self._running:
            return

        self._running = False

        if self._queue is not None:
            # join() also waits for events a worker is still publishing
            logger.info(
                "Draining event queue",
                pending=self._queue.qsize(),
                in_flight=self._in_flight,
            )
            try:
                await asyncio.wait_for(
                    self._queue.join(), timeout=self.settings.drain_timeout_seconds
                )
            except asyncio.TimeoutError:
                dropped = self._queue.qsize() + self._in_flight
                logger.warning("Event queue drain timed out", dropped=dropped)
                if self.metrics and dropped:
                    self.metrics.record_event_dropped("shutdown", dropped)

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        logger.info("Event emitter stopped")

    def emit(self, event: LogEvent) -> bool:
        """
        Queue an event for publishing without waiting.

        Returns:
            True if queued, False if the event was dropped
        """
        if not self._running or self._queue is None:
            logger.warning("Event emitter not running, dropping event", request_id=event.request_id)
            if self.metrics:
                self.metrics.record_event_dropped("not_running")
            return False

        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "Event queue full, dropping event",
                request_id=event.request_id,
                queue_max_size=self.settings.queue_max_size,
            )
            if self.metrics:
                self.metrics.record_event_dropped("queue_full")
            return False

        if self.metrics:
            self.metrics.record_event_emitted(self._queue.qsize())
        return True

    async def _run_worker(self, worker_id: int) -> None:
        """Publish queued events until cancelled."""
        assert self._queue is not None
        queue = self._queue

        while True:
            event = await queue.get()
            self._in_flight += 1
            try:
                await self._publish(event, worker_id)
            finally:
                self._in_flight -= 1
                queue.task_done()

    async def _publish(self, event: LogEvent, worker_id: int) -> None:
        start = time.perf_counter()
        success = False

        try:
            result = await self.sink.publish(event)
            success = result.success

            if success:
                logger.debug(
                    "Published API log event",
                    worker=worker_id,
                    request_id=event.request_id,
                    message_id=result.message_id,
                )
            else:
                logger.error(
                    "Failed to publish API log event",
                    worker=worker_id,
                    request_id=event.request_id,
                    error=result.error_message,
                )

        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "Sink raised while publishing API log event",
                worker=worker_id,
                request_id=event.request_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )

        if self.metrics:
            self.metrics.record_publish(success, time.perf_counter() - start, self.queue_depth)
