"""
Per-request log context.

The middleware binds the request and trace ids when a request arrives;
the guard pipeline adds the principal and tenant as it resolves them.
Everything lives in one immutable snapshot held by a ContextVar, so a
binding made inside a request never leaks into the next one.
"""

import contextvars
from dataclasses import asdict, dataclass, replace
from typing import Any


@dataclass(frozen=True)
class LogContext:
    request_id: str | None = None
    trace_id: str | None = None
    principal_id: int | None = None
    tenant_id: int | None = None


_log_context: contextvars.ContextVar[LogContext] = contextvars.ContextVar(
    "tenantgate_log_context", default=LogContext()
)


def bind_request(request_id: str, trace_id: str) -> contextvars.Token:
    """Start a fresh context for a request. Pass the token to ``reset_context``."""
    return _log_context.set(LogContext(request_id=request_id, trace_id=trace_id))


def bind_principal(principal_id: int) -> None:
    _log_context.set(replace(_log_context.get(), principal_id=principal_id))


def bind_tenant(tenant_id: int) -> None:
    _log_context.set(replace(_log_context.get(), tenant_id=tenant_id))


def reset_context(token: contextvars.Token) -> None:
    _log_context.reset(token)


def current_context() -> dict[str, Any]:
    """Bound values only; unset fields are omitted."""
    return {key: value for key, value in asdict(_log_context.get()).items() if value is not None}
