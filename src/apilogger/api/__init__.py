"""
API endpoints package.

Contains FastAPI routers for all service endpoints:
- /v1/items - Demo item API
- /health, /ready - Health checks
- /metrics - Prometheus metrics
"""
from .health import router as health_router
from .items import router as items_router
from .metrics import router as metrics_router

__all__ = ["health_router", "items_router", "metrics_router"]
