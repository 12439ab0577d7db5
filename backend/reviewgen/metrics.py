"""Prometheus metrics for monitoring and observability."""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from functools import lru_cache

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .logging_config import SERVICE_NAME, SERVICE_VERSION

# ==============================================================================
# APPLICATION INFO
# ==============================================================================

app_info = Info("tag_review", "Tag review generator information")
app_info.info({"version": SERVICE_VERSION, "service": SERVICE_NAME})

# ==============================================================================
# HTTP METRICS
# ==============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently in progress",
    ["method", "endpoint"],
)

# ==============================================================================
# REVIEW GENERATION METRICS
# ==============================================================================

reviews_generated_total = Counter(
    "reviews_generated_total",
    "Reviews generated",
    ["style", "language"],
)

review_generation_failures_total = Counter(
    "review_generation_failures_total",
    "Review generation failures",
    ["reason"],
)

review_tokens_total = Counter(
    "review_tokens_total",
    "Estimated tokens spent on review generation",
    ["source"],
)

usage_sink_dispatch_total = Counter(
    "usage_sink_dispatch_total",
    "Usage record dispatch attempts",
    ["result"],
)

catalog_fetch_total = Counter(
    "catalog_fetch_total",
    "Spreadsheet catalog fetches",
    ["result"],
)


@lru_cache(maxsize=2048)
def normalize_endpoint(path: str) -> str:
    """
    Normalize endpoint path to reduce cardinality.

    Examples:
        /v1/stores/store-001 -> /v1/stores/{id}
        /v1/stores/42/tags -> /v1/stores/{id}/tags
    """
    return re.sub(r"^(/v1/stores)/[^/]+", r"\1/{id}", path)


# ==============================================================================
# PROMETHEUS MIDDLEWARE
# ==============================================================================


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP request metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = normalize_endpoint(request.url.path)
        http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.perf_counter()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - start_time
            )
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
            http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()


def get_metrics() -> Response:
    """Generate Prometheus metrics response."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "PrometheusMiddleware",
    "catalog_fetch_total",
    "get_metrics",
    "normalize_endpoint",
    "review_generation_failures_total",
    "review_tokens_total",
    "reviews_generated_total",
    "usage_sink_dispatch_total",
]
