"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from attribution_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from attribution_gateway.api.v1 import attribution, matcher
from attribution_gateway.infrastructure.database.models import Base
from attribution_gateway.infrastructure.database.session import engine
from attribution_gateway.infrastructure.observability.logging import setup_logging
from attribution_gateway.config import settings

setup_logging(settings.log_level)

API_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_audit_tables:
        Base.metadata.create_all(bind=engine)
    logging.info(
        "Attribution gateway started",
        extra={"store_api_base": settings.store_api_base, "matcher_function_url": settings.matcher_function_url},
    )
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Attribution Gateway",
        description="Refcode attribution classification, revenue partitioning and campaign suggestions",
        version=API_VERSION,
        lifespan=lifespan,
    )

    # Last added runs first: request ID must exist before metrics log it
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name, "version": API_VERSION}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(attribution.router, prefix="/v1", tags=["attribution"])
    app.include_router(matcher.router, prefix="/v1", tags=["matcher"])

    return app


app = create_app()
