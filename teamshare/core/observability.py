"""Prometheus instrumentation: HTTP traffic, upload outcomes and the ``/metrics`` handler."""

from __future__ import annotations

import re
import time

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

REQUESTS = Counter(
    "teamshare_http_requests_total",
    "HTTP requests by route and status",
    ["method", "route", "status"],
)

LATENCY = Histogram(
    "teamshare_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "route"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

UNHANDLED = Counter(
    "teamshare_http_unhandled_exceptions_total",
    "Requests that ended in an unhandled exception",
    ["method", "route", "exception_type"],
)

files_uploaded_total = Counter(
    "teamshare_files_uploaded_total",
    "Files accepted by the upload endpoint",
)

upload_rejections_total = Counter(
    "teamshare_upload_rejections_total",
    "Files rejected by the upload endpoint",
)

# Team numbers and uuid file ids in raw paths.
_ID_SEGMENT = re.compile(r"/([0-9]+|[0-9a-f]{8}-[0-9a-f-]{27,})(?=/|$)")


def route_label(request: Request) -> str:
    """Route template when routing matched, else the path with ids masked."""
    route = request.scope.get("route")
    template = getattr(route, "path_format", None)
    if template:
        return template
    return _ID_SEGMENT.sub("/{id}", request.url.path)


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            route = route_label(request)
            UNHANDLED.labels(request.method, route, type(exc).__name__).inc()
            REQUESTS.labels(request.method, route, "500").inc()
            LATENCY.labels(request.method, route).observe(time.perf_counter() - started)
            raise

        route = route_label(request)
        REQUESTS.labels(request.method, route, str(response.status_code)).inc()
        LATENCY.labels(request.method, route).observe(time.perf_counter() - started)
        return response


async def metrics_endpoint(request: Request) -> Response:
    return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
