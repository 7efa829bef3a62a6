"""
Fire-and-forget notifications.

Callers invoke these only after their transaction has committed. A
failure to enqueue is logged and counted; it never reaches the caller.
"""

import structlog

from tenantgate.config import settings
from tenantgate.core.metrics import notifications_total
from tenantgate.features.notifications.tasks import send_email

logger = structlog.get_logger(__name__)


class Notifier:
    """Queues outbound email on the Celery broker."""

    def _dispatch(self, kind: str, to_email: str, subject: str, body: str) -> bool:
        if not settings.notifications_enabled:
            notifications_total.labels(kind=kind, status="disabled").inc()
            return False

        try:
            send_email.delay(to_email, subject, body)
        except Exception as exc:
            notifications_total.labels(kind=kind, status="failed").inc()
            logger.warning(
                "notification_dispatch_failed",
                kind=kind,
                recipient=to_email,
                error=str(exc),
            )
            return False

        notifications_total.labels(kind=kind, status="queued").inc()
        logger.info("notification_queued", kind=kind, recipient=to_email)
        return True

    def send_invitation(self, to_email: str, token_value: str, label: str | None = None) -> bool:
        url = f"{settings.app_url.rstrip('/')}/invite/{token_value}"
        subject = f"You're invited to {settings.app_name}"
        body = (
            f"You have been invited{f' ({label})' if label else ''}.\n\n"
            f"Accept your invitation here:\n{url}\n"
        )
        return self._dispatch("invitation", to_email, subject, body)

    def send_welcome(self, to_email: str, full_name: str | None = None, tenant_name: str | None = None) -> bool:
        greeting = f"Hi {full_name}," if full_name else "Hi,"
        where = f" to {tenant_name}" if tenant_name else ""
        subject = f"Welcome{where}"
        body = (
            f"{greeting}\n\n"
            f"Your access{where} is ready. Sign in at {settings.app_url}.\n"
        )
        return self._dispatch("welcome", to_email, subject, body)


notifier = Notifier()


def get_notifier() -> Notifier:
    """FastAPI dependency; overridden in tests."""
    return notifier
