"""Celery tasks running the friendship/notification repair passes."""

from __future__ import annotations

import logging
from dataclasses import asdict

from sqlmodel import Session

from resonant.celery_app import celery_app
from resonant.db import engine
from resonant.services import reconciliation

logger = logging.getLogger(__name__)


def _run(pass_fn) -> dict:
    # Passes commit or roll back themselves and re-raise on failure
    with Session(engine) as session:
        result = pass_fn(session)
    return asdict(result)


@celery_app.task(name="resonant.tasks.reconciliation.purge_orphaned_friendships_task")
def purge_orphaned_friendships_task() -> dict:
    return _run(reconciliation.purge_orphaned_friendships)


@celery_app.task(name="resonant.tasks.reconciliation.purge_orphaned_notifications_task")
def purge_orphaned_notifications_task() -> dict:
    return _run(reconciliation.purge_orphaned_notifications)


@celery_app.task(name="resonant.tasks.reconciliation.backfill_friend_request_targets_task")
def backfill_friend_request_targets_task() -> dict:
    return _run(reconciliation.backfill_friend_request_targets)


@celery_app.task(name="resonant.tasks.reconciliation.sync_friend_request_notifications_task")
def sync_friend_request_notifications_task() -> dict:
    return _run(reconciliation.sync_friend_request_notifications)


@celery_app.task(name="resonant.tasks.reconciliation.purge_stale_rejections_task")
def purge_stale_rejections_task() -> dict:
    return _run(reconciliation.purge_stale_rejections)


@celery_app.task(name="resonant.tasks.reconciliation.run_full_audit_task")
def run_full_audit_task() -> dict:
    """
    Periodic audit scheduled by Celery Beat.

    Returns the per-pass counters keyed by pass name.
    """
    with Session(engine) as session:
        results = reconciliation.run_full_audit(session)
    summary = {result.name: asdict(result) for result in results}
    logger.info(
        "Reconciliation audit finished: "
        + "; ".join(result.summary() for result in results)
    )
    return summary
