"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from library_circulation.api.middleware import RequestIDMiddleware, MetricsMiddleware
from library_circulation.api.v1 import borrow_tickets, registrations, return_tickets
from library_circulation.infrastructure.observability.logging import setup_logging
from library_circulation.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Library Circulation Service",
        description="Registrations, borrow/return tickets, fines and inventory",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(registrations.router, prefix="/v1", tags=["registrations"])
    app.include_router(borrow_tickets.router, prefix="/v1", tags=["borrow-tickets"])
    app.include_router(return_tickets.router, prefix="/v1", tags=["return-tickets"])

    return app


app = create_app()
