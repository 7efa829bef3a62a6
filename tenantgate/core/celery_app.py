"""
Celery application configuration.

Celery handles outbound notification email so that request handlers never
wait on the SMTP relay.
"""

import logging

from celery import Celery
from celery.signals import task_failure, task_success

from tenantgate.config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "tenantgate",
    broker=str(settings.redis_url),
    backend=str(settings.redis_url),
    include=[
        "tenantgate.features.notifications.tasks",
    ]
)

celery_app.conf.update(
    # Task execution
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task routing
    task_routes={
        "tenantgate.features.notifications.tasks.*": {"queue": "notifications"},
    },

    # Result backend
    result_expires=3600,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=120,
    task_soft_time_limit=90,

    # Worker settings
    worker_prefetch_multiplier=4,
    worker_max_tasks_per_child=1000,

    # Retry settings
    task_default_max_retries=3,
    task_default_retry_delay=60,

    # Monitoring
    worker_send_task_events=True,
    task_send_sent_event=True,
)


@task_success.connect
def task_success_handler(sender=None, result=None, **kwargs):
    """Log successful task completion."""
    logger.info(f"Task succeeded: {sender.name}")


@task_failure.connect
def task_failure_handler(sender=None, exception=None, **kwargs):
    """Log task failures."""
    logger.error(f"Task failed: {sender.name} - {exception}")
