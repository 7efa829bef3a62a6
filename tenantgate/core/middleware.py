"""
Request context middleware.
"""

import re
import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from tenantgate.core.context import bind_request, reset_context

logger = structlog.get_logger(__name__)

# Caller-supplied ids end up in logs and response headers
_SAFE_ID = re.compile(r"^[A-Za-z0-9._-]{8,64}$")


def _inbound_id(request: Request, header: str) -> str:
    value = request.headers.get(header, "")
    return value if _SAFE_ID.match(value) else str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Correlates every log line of a request.

    Binds the request and trace ids for structured logging, echoes them
    back as response headers, and records who the guard pipeline resolved
    (``request.state.principal_id`` / ``tenant_id``) on completion.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        request_id = _inbound_id(request, "X-Request-ID")
        trace_id = _inbound_id(request, "X-Trace-ID")

        request.state.request_id = request_id
        request.state.trace_id = trace_id
        request.state.principal_id = None
        request.state.tenant_id = None

        token = bind_request(request_id, trace_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                error=str(e),
                exc_info=True,
            )
            raise
        else:
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Trace-ID"] = trace_id
            response.headers["X-Process-Time"] = str(duration_ms)

            log = logger.warning if response.status_code >= 500 else logger.info
            log(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=duration_ms,
                principal_id=request.state.principal_id,
                tenant_id=request.state.tenant_id,
            )
            return response
        finally:
            reset_context(token)
