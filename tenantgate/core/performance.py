"""
HTTP performance metrics.
"""

import time
from typing import Callable

from fastapi import Request

from tenantgate.core.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

UNMATCHED_ENDPOINT = "unmatched"


def _endpoint_label(request: Request) -> str:
    """
    Route template ('/api/v1/tenants/{client_id}') rather than the raw path.

    Raw paths would carry magic-link values from the preview route into
    metric labels, and unknown paths would grow label cardinality. Only
    known once routing has run.
    """
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ENDPOINT


async def track_http_metrics(request: Request, call_next: Callable):
    """
    Middleware to track HTTP metrics.

    Records:
    - Request count by endpoint and status
    - Request duration histogram
    - Requests in progress gauge (by method; the route is not resolved yet)
    """
    method = request.method
    in_progress = http_requests_in_progress.labels(method=method)
    in_progress.inc()

    start_time = time.perf_counter()

    try:
        response = await call_next(request)

        endpoint = _endpoint_label(request)

        http_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint,
        ).observe(time.perf_counter() - start_time)

        http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        return response

    finally:
        in_progress.dec()
