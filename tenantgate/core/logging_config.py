"""
Structured logging configuration.

Provides:
- JSON formatted logs for production (ELK, CloudWatch, etc.)
- Human-readable logs for development
- Correlation IDs for request tracking
- Contextual information (principal, tenant, trace)
"""

import logging
import re
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from tenantgate.config import settings


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add application context to log entries.

    Adds:
    - Environment (dev/staging/prod)
    - Service name
    - Version
    """
    event_dict["environment"] = settings.environment
    event_dict["service"] = settings.app_name
    event_dict["version"] = settings.app_version
    return event_dict


def add_request_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add request context set by the middleware and the guard pipeline."""
    from tenantgate.core.context import current_context

    for key, value in current_context().items():
        event_dict.setdefault(key, value)

    return event_dict


def censor_sensitive_data(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Censor sensitive information from logs.

    Magic-link values are bearer credentials: anything keyed like a token
    is redacted along with passwords and secrets. Ids are kept.
    """
    sensitive_keys = {
        "password", "token", "secret", "api_key",
        "access_token", "hashed_password", "authorization",
    }

    for key in list(event_dict.keys()):
        lowered = key.lower()
        if lowered.endswith("_id"):
            continue
        if any(sensitive in lowered for sensitive in sensitive_keys):
            event_dict[key] = "***REDACTED***"

    return event_dict


_PREVIEW_PATH = re.compile(r"(/magic-links/preview/)[^/?#]+")


def mask_link_paths(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Magic-link values travel in the preview URL; mask them in logged paths."""
    path = event_dict.get("path")
    if isinstance(path, str):
        event_dict["path"] = _PREVIEW_PATH.sub(r"\1***", path)
    return event_dict


def setup_logging() -> None:
    """
    Configure application-wide structured logging.

    Production: JSON logs to stdout (for log aggregation)
    Development: Colorized console logs (human-readable)
    """
    log_level = getattr(logging, settings.log_level.upper())

    shared_processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        add_app_context,
        add_request_context,
        censor_sensitive_data,
        mask_link_paths,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.log_format == "json":
        processors = shared_processors + [
            structlog.processors.JSONRenderer()
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True)
        ]

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("celery").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger = structlog.get_logger(__name__)
    logger.info(
        "logging_configured",
        log_level=settings.log_level,
        log_format=settings.log_format,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("token_redeemed", token_id=token.id, principal_id=principal.id)
    """
    return structlog.get_logger(name)
