"""
Main FastAPI application entry point.

This module sets up the FastAPI app with the logging pipeline middleware,
routes, and lifecycle events.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import health_router, items_router, metrics_router
from .api.items import ItemStore
from .config import Settings, get_settings
from .core.emitter import EventEmitter
from .core.exceptions import ApiLoggerException
from .core.identifiers import IdentifierMiddleware
from .core.metrics import MetricsCollector
from .core.pipeline import LoggingMiddleware
from .core.redaction import Redactor
from .core.skip import SkipFilter
from .sinks import EventSink, build_sink


def configure_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )

    # Silence the verbose watchfiles logger
    logging.getLogger("watchfiles").setLevel(logging.WARNING)

    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format.lower() == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_lifespan_handler(emitter: EventEmitter, sink: EventSink) -> Any:
    """Create a lifespan handler owning the sink and emitter workers."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Starts the emitter workers; on shutdown drains the emitter before
        closing the sink.
        """
        logger = structlog.get_logger(__name__)
        logger.info("Starting API logger service", version=app.version)

        await emitter.start()

        try:
            logger.info("API logger service started successfully")
            yield
        finally:
            logger.info("Shutting down API logger service")

            await emitter.stop()
            if not await sink.close():
                logger.warning("Event sink did not close cleanly")

            logger.info("API logger service shutdown complete")

    return lifespan


def register_exception_handlers(app: FastAPI) -> None:
    """Attach JSON error handlers."""

    @app.exception_handler(ApiLoggerException)
    async def apilogger_exception_handler(request: Request, exc: ApiLoggerException) -> JSONResponse:
        """Handle custom service exceptions."""
        logger = structlog.get_logger(__name__)
        logger.warning(
            "Service exception occurred",
            error=str(exc),
            status_code=exc.status_code,
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.error_code,
                "message": str(exc),
                "details": exc.details,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger = structlog.get_logger(__name__)
        logger.error(
            "Unexpected exception occurred",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
            exc_info=True,
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            },
        )


def create_app(settings: Optional[Settings] = None, sink: Optional[EventSink] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use; defaults to the cached settings
        sink: Event sink to publish to; defaults to the configured backend
    """
    if settings is None:
        settings = get_settings()

    configure_logging(settings.log_level, settings.log_format)

    # Immutable components built once and injected
    metrics = MetricsCollector(version=settings.version)
    if sink is None:
        sink = build_sink(settings)
    emitter = EventEmitter(sink, settings.emitter, metrics)
    redactor = Redactor(settings.redaction.sensitive_keys)
    skip_filter = SkipFilter(settings.pipeline.skip_routes)

    app = FastAPI(
        title="API Pub/Sub Logger",
        description="HTTP request/response capture with redaction, published to Pub/Sub",
        version=settings.version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=create_lifespan_handler(emitter, sink),
    )

    app.state.settings = settings
    app.state.metrics = metrics
    app.state.emitter = emitter
    app.state.item_store = ItemStore.with_samples()

    # Added innermost first: identifiers run before the logging stage
    app.add_middleware(
        LoggingMiddleware,
        service_name=settings.service_name,
        emitter=emitter,
        redactor=redactor,
        skip_filter=skip_filter,
        metrics=metrics,
    )
    app.add_middleware(IdentifierMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    register_exception_handlers(app)

    app.include_router(items_router, tags=["items"])
    app.include_router(health_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])

    @app.get("/", include_in_schema=False)
    async def root() -> Dict[str, str]:
        """Root endpoint with service information."""
        return {
            "service": settings.service_name,
            "version": app.version,
            "docs": "/docs",
        }

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "apilogger.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )
