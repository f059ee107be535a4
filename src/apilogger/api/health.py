"""
Health check endpoints.

- /health: Liveness probe (always 200 if service alive)
- /ready: Readiness probe (200 only while the event emitter is running)
"""

from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Request, Response, status

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/health",
    status_code=200,
    summary="Liveness probe",
)
async def health_check() -> Dict[str, str]:
    """Liveness probe - always returns 200 if service is alive."""
    return {"status": "ok"}


@router.get(
    "/ready",
    summary="Readiness probe",
    description="""
    Readiness probe endpoint.

    Returns 503 Service Unavailable while the event emitter is not running,
    e.g. before startup completes or during shutdown.
    """,
)
async def readiness_check(request: Request, response: Response) -> Dict[str, Any]:
    emitter = getattr(request.app.state, "emitter", None)

    if emitter is None or not emitter.is_running:
        logger.warning("Readiness check failed", reason="emitter_not_running")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {
            "status": "not_ready",
            "reason": "emitter_not_running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return {
        "status": "ready",
        "queue_depth": emitter.queue_depth,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
