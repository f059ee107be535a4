"""
Prometheus metrics endpoint.

Exposes metrics in Prometheus text format for scraping.
"""

import structlog
from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="""
    Prometheus metrics endpoint in standard text format.

    **Key Metrics:**
    - http_requests_total{method,route,status_code} - Requests through the pipeline
    - log_events_emitted_total - Events queued for publishing
    - log_events_dropped_total{reason} - Events dropped (queue_full, not_running, shutdown)
    - log_events_publish_failures_total - Failed sink publishes
    - log_emitter_queue_depth - Events waiting to be published
    """,
)
async def get_metrics(request: Request) -> Response:
    metrics_collector = getattr(request.app.state, "metrics", None)

    if not metrics_collector:
        logger.warning("Metrics collector not initialized")
        return Response(
            content="# Metrics collector not initialized\n",
            media_type=CONTENT_TYPE_LATEST,
        )

    metrics_collector.update_system_metrics()
    metrics_data = generate_latest(metrics_collector.registry)

    logger.debug("Metrics scraped successfully", size_bytes=len(metrics_data))

    return Response(
        content=metrics_data,
        media_type=CONTENT_TYPE_LATEST,
    )
