"""Prometheus metrics for the build service.

Series live in the default registry and are served at ``/metrics`` by the
app (and, when ``F8_METRICS_PORT`` is set, by a separate listener).
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

from prometheus_client import Histogram, start_http_server
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

NAMESPACE = "fabric8_build_service"

# 50ms doubling up to 6.4s.
REQUEST_BUCKETS = [0.05 * 2**i for i in range(8)]

store_operation_duration_histogram = Histogram(
    "db_operation_duration_seconds",
    "Pipeline environment map store operation duration in seconds",
    ["operation"],
    namespace=NAMESPACE,
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)

http_request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "route", "code"],
    namespace=NAMESPACE,
    buckets=REQUEST_BUCKETS,
)


def _route_label(request: Request) -> str:
    # Route templates keep the label set bounded (no raw IDs).
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Record the duration of every API request, labelled by route template."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if request.url.path.startswith("/metrics"):
            return await call_next(request)

        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            http_request_duration_histogram.labels(
                method=request.method,
                route=_route_label(request),
                code=str(status_code),
            ).observe(time.perf_counter() - start)


def start_metrics_server(host: str, port: int):
    """Serve ``/metrics`` on its own address; returns the server to shut down."""
    server, _thread = start_http_server(port, addr=host)
    return server
