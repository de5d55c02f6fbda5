"""Celery application configuration."""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import Celery

from resonant.core.config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "resonant",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["resonant.tasks.reconciliation"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    broker_connection_retry_on_startup=True,
    # Passes are idempotent, so re-running after a lost worker is safe
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    result_expires=3600,
    worker_prefetch_multiplier=1,
)

celery_app.conf.beat_schedule = {
    "reconciliation-audit": {
        "task": "resonant.tasks.reconciliation.run_full_audit_task",
        "schedule": timedelta(minutes=settings.RECONCILIATION_INTERVAL_MINUTES),
    },
}

logger.info(f"Celery app configured with broker: {settings.CELERY_BROKER_URL}")
