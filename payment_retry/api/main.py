"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from payment_retry.api.middleware import RequestIDMiddleware, MetricsMiddleware
from payment_retry.api.v1 import attempts
from payment_retry.infrastructure.observability.logging import setup_logging
from payment_retry.config import settings

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Payment Retry Service",
        description="Retry decisions for failed payment collection attempts",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Last added = first executed
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(attempts.router, prefix="/v1", tags=["attempts"])

    return app


app = create_app()
