"""
FastAPI application entry point with health and metrics routes.
"""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from slotbook import __version__
from slotbook.api.middleware.error_handler import (
    booking_error_handler,
    validation_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from slotbook.api.routes import availability, blocks, clients, providers, reservations, services
from slotbook.lib.db import init_db
from slotbook.lib.errors import BookingError
from slotbook.lib.logging import get_logger, set_correlation_id
from slotbook.lib.metrics import get_metrics_collector
from slotbook.lib.settings import settings

logger = get_logger(__name__)


# Correlation ID middleware
class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation_id to all requests for distributed tracing.
    Accepts X-Correlation-ID from incoming requests or generates a new one.
    """

    async def dispatch(self, request: Request, call_next):
        # Get correlation ID from header or generate new one
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))

        # Store in request state for handlers and in the logging context
        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)

        logger.info(
            "Incoming request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None,
            }
        )

        response = await call_next(request)

        response.headers["X-Correlation-ID"] = correlation_id

        logger.info(
            "Response sent",
            extra={
                "status_code": response.status_code,
            }
        )

        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup/shutdown events.
    """
    # Startup
    logger.info(f"{settings.app_name} starting up...")
    if settings.auto_create_tables:
        init_db()
        logger.info("Database tables created")
    yield
    # Shutdown
    logger.info(f"{settings.app_name} shutting down...")


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="Conflict-safe reservation engine for provider calendars",
    lifespan=lifespan,
)


# Correlation ID middleware
app.add_middleware(CorrelationIdMiddleware)


# Register exception handlers
app.add_exception_handler(BookingError, booking_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


# Include routers
app.include_router(availability.router)
app.include_router(reservations.router)
app.include_router(blocks.router)
app.include_router(providers.router)
app.include_router(services.router)
app.include_router(clients.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/metrics", include_in_schema=False)
def metrics_endpoint():
    """
    Prometheus-compatible metrics endpoint.

    Metrics exposed:
    - availability_queries_total: Slot computations by kind
    - reservations_created_total: Committed reservations by initial state
    - booking_rejections_total: Refused reservation requests by reason
    - reservation_transitions_total: Lifecycle changes
    - block_mutations_total: Block creations and deletions

    Returns:
        Prometheus text format metrics
    """
    metrics = get_metrics_collector()
    return PlainTextResponse(
        content=metrics.export_prometheus(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
