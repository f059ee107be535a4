"""
Prometheus metrics collection.

In-memory counters per application instance; Prometheus handles storage.
"""

import time
from typing import Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """
    Centralized metrics collection for the API logger.

    Each collector owns its registry so several applications (e.g. in
    tests) can coexist in one process.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None, version: str = "1.0.0") -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        # Service info
        self.service_info = Info(
            "apilogger_service",
            "API logger service information",
            registry=self.registry,
        )
        self.service_info.info({
            "version": version,
            "service": "apilogger",
        })

        # Request metrics
        self.requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests seen by the logging pipeline",
            ["method", "route", "status_code"],
            registry=self.registry,
        )

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "route"],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry,
        )

        # Event metrics
        self.events_emitted_total = Counter(
            "log_events_emitted_total",
            "Total log events accepted by the emitter queue",
            registry=self.registry,
        )

        self.events_dropped_total = Counter(
            "log_events_dropped_total",
            "Total log events dropped before publishing",
            ["reason"],
            registry=self.registry,
        )

        self.events_published_total = Counter(
            "log_events_published_total",
            "Total log events successfully published to the sink",
            registry=self.registry,
        )

        self.events_publish_failures_total = Counter(
            "log_events_publish_failures_total",
            "Total failed publish attempts",
            registry=self.registry,
        )

        self.emitter_queue_depth = Gauge(
            "log_emitter_queue_depth",
            "Events waiting in the emitter queue",
            registry=self.registry,
        )

        self.sink_publish_duration = Histogram(
            "log_sink_publish_duration_seconds",
            "Sink publish latency in seconds",
            buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry,
        )

        self.uptime_seconds = Gauge(
            "uptime_seconds",
            "Service uptime in seconds",
            registry=self.registry,
        )

        # Track start time for uptime calculation
        self._start_time = time.time()

    def record_request(
        self,
        method: str,
        route: str,
        status_code: int,
        duration_seconds: float
    ) -> None:
        """Record HTTP request metrics."""
        route_label = route or "unmatched"

        self.requests_total.labels(
            method=method,
            route=route_label,
            status_code=str(status_code)
        ).inc()

        self.request_duration.labels(
            method=method,
            route=route_label
        ).observe(duration_seconds)

    def record_event_emitted(self, queue_depth: int) -> None:
        self.events_emitted_total.inc()
        self.emitter_queue_depth.set(queue_depth)

    def record_event_dropped(self, reason: str, count: int = 1) -> None:
        self.events_dropped_total.labels(reason=reason).inc(count)

    def record_publish(self, success: bool, duration_seconds: float, queue_depth: int) -> None:
        """Record the outcome of one sink publish attempt."""
        if success:
            self.events_published_total.inc()
        else:
            self.events_publish_failures_total.inc()

        self.sink_publish_duration.observe(duration_seconds)
        self.emitter_queue_depth.set(queue_depth)

    def update_system_metrics(self) -> None:
        """Update system-level metrics."""
        self.uptime_seconds.set(time.time() - self._start_time)
