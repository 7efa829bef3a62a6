"""
Background email delivery.

Tasks run in Celery workers, separate from the API server.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from tenantgate.config import settings
from tenantgate.core.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="tenantgate.features.notifications.tasks.send_email",
    autoretry_for=(smtplib.SMTPException, OSError),
    retry_backoff=True,
    max_retries=3,
)
def send_email(self, to_email: str, subject: str, body: str, html_body: str | None = None) -> dict:
    """
    Hand one message to the configured SMTP relay.

    Without an ``SMTP_HOST`` the message is logged and dropped, which is
    the expected setup for local development.
    """
    if not settings.smtp_host:
        logger.info(f"SMTP not configured, skipping email to {to_email}: {subject}")
        return {"status": "skipped", "to": to_email}

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.mail_from
    msg["To"] = to_email
    msg.attach(MIMEText(body, "plain", "utf-8"))
    if html_body:
        msg.attach(MIMEText(html_body, "html", "utf-8"))

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
        if settings.smtp_use_tls:
            server.starttls()
        if settings.smtp_username and settings.smtp_password:
            server.login(settings.smtp_username, settings.smtp_password)
        server.send_message(msg)

    logger.info(f"Email sent to {to_email}: {subject}")
    return {"status": "sent", "to": to_email}
