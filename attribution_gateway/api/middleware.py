"""Request tracing and HTTP metrics middleware"""

import re
import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from attribution_gateway.infrastructure.observability.metrics import request_duration_histogram

# Caller-supplied IDs end up in logs and response headers
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

_QUIET_ENDPOINTS = ("/health", "/metrics")


def route_template(request: Request) -> str:
    """Matched route path, e.g. /v1/organizations/{organization_id}/attribution"""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse a well-formed X-Request-ID from the caller, otherwise mint one"""

    async def dispatch(self, request: Request, call_next):
        incoming = request.headers.get("X-Request-ID", "")
        request_id = incoming if _REQUEST_ID_PATTERN.match(incoming) else str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Latency histogram and access log, labelled by route template so org IDs stay out of labels"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start_time
        endpoint = route_template(request)
        request_duration_histogram.labels(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code,
        ).observe(duration)

        if endpoint not in _QUIET_ENDPOINTS:
            logging.info(
                "Request handled",
                extra={
                    "request_id": getattr(request.state, "request_id", "unknown"),
                    "method": request.method,
                    "endpoint": endpoint,
                    "status": response.status_code,
                    "duration_ms": round(duration * 1000, 2),
                },
            )

        return response
