"""
Repair passes restoring consistency between friendships and notifications.

Each pass commits on success, rolls back and re-raises on failure, and is
idempotent: running it again after success changes nothing. The standalone
scripts under ``backend/scripts`` and the periodic Celery audit both call
into this module.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from functools import wraps
from typing import Callable

from sqlalchemy import delete, func, or_
from sqlmodel import Session, select

from resonant.core.config import settings
from resonant.models import Friendship, FriendshipStatus, Notification, NotificationType, Profile
from resonant.schemas import FriendAcceptedPayload, FriendRequestPayload, parse_payload
from resonant.services import notifications

logger = logging.getLogger(__name__)

FRIEND_REQUEST = NotificationType.FRIEND_REQUEST.value
FRIEND_ACCEPTED = NotificationType.FRIEND_ACCEPTED.value


@dataclass
class PassResult:
    name: str
    examined: int = 0
    deleted: int = 0
    updated: int = 0
    created: int = 0
    details: list[str] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"{self.name}: examined={self.examined} deleted={self.deleted} "
            f"updated={self.updated} created={self.created}"
        )


def reconciliation_pass(name: str) -> Callable[[Callable[..., PassResult]], Callable[..., PassResult]]:
    """Run the wrapped pass as one transaction and log its outcome."""

    def decorator(pass_fn: Callable[..., PassResult]) -> Callable[..., PassResult]:
        @wraps(pass_fn)
        def wrapper(session: Session, *args, **kwargs) -> PassResult:
            logger.info(f"Starting {name}")
            try:
                result = pass_fn(session, *args, **kwargs)
                session.commit()
            except Exception as e:
                session.rollback()
                logger.error(f"{name} failed: {e}", exc_info=True)
                raise
            logger.info(result.summary())
            return result

        return wrapper

    return decorator


def _friend_notifications(session: Session, type: str) -> list[Notification]:
    return list(
        session.exec(select(Notification).where(Notification.type == type).order_by(Notification.id)).all()
    )


def _friendship_ids(session: Session, status: FriendshipStatus) -> set[int]:
    return set(session.exec(select(Friendship.id).where(Friendship.status == status.value)).all())


@reconciliation_pass("orphan-friendship purge")
def purge_orphaned_friendships(session: Session) -> PassResult:
    """Delete friendships whose requester or addressee profile is gone or tombstoned."""
    result = PassResult(name="orphan-friendship purge")
    result.examined = session.exec(select(func.count()).select_from(Friendship)).one()

    live_profiles = select(Profile.id).where(Profile.deleted_at.is_(None))
    orphan_ids = list(
        session.exec(
            select(Friendship.id).where(
                or_(
                    Friendship.requester_id.not_in(live_profiles),
                    Friendship.addressee_id.not_in(live_profiles),
                )
            )
        ).all()
    )
    if not orphan_ids:
        return result

    # Their friend_request notifications go with them
    removed_notes = session.execute(
        delete(Notification)
        .where(
            Notification.type == FRIEND_REQUEST,
            Notification.data["friendshipId"].as_integer().in_(orphan_ids),
        )
        .execution_options(synchronize_session="fetch")
    )
    outcome = session.execute(
        delete(Friendship)
        .where(Friendship.id.in_(orphan_ids))
        .execution_options(synchronize_session="fetch")
    )
    result.deleted = outcome.rowcount or 0
    result.details.append(f"friendships {orphan_ids}, {removed_notes.rowcount or 0} friend_request notification(s)")
    return result


@reconciliation_pass("orphan-notification purge")
def purge_orphaned_notifications(session: Session) -> PassResult:
    """
    Delete friend_request notifications not backed by a pending friendship,
    keeping only the newest one per friendship.

    With no pending friendships at all every friend_request goes. The same
    applies to friend_accepted notifications once no accepted friendship
    exists; those naming a friendship that is no longer accepted are
    removed individually.
    """
    result = PassResult(name="orphan-notification purge")
    requests = _friend_notifications(session, FRIEND_REQUEST)
    accepted_notes = _friend_notifications(session, FRIEND_ACCEPTED)
    result.examined = len(requests) + len(accepted_notes)

    pending_ids = _friendship_ids(session, FriendshipStatus.PENDING)
    seen: set[int] = set()
    # Newest first so duplicates left by overlapping sync runs lose the older rows
    for notification in reversed(requests):
        payload = parse_payload(notification.type, notification.data)
        friendship_id = payload.friendship_id if isinstance(payload, FriendRequestPayload) else None
        if not pending_ids or friendship_id not in pending_ids:
            session.delete(notification)
            result.deleted += 1
            result.details.append(f"notification {notification.id} (friendship {friendship_id})")
        elif friendship_id in seen:
            session.delete(notification)
            result.deleted += 1
            result.details.append(f"duplicate notification {notification.id} (friendship {friendship_id})")
        else:
            seen.add(friendship_id)

    accepted_ids = _friendship_ids(session, FriendshipStatus.ACCEPTED)
    for notification in accepted_notes:
        payload = parse_payload(notification.type, notification.data)
        friendship_id = payload.friendship_id if isinstance(payload, FriendAcceptedPayload) else None
        if not accepted_ids or (friendship_id is not None and friendship_id not in accepted_ids):
            session.delete(notification)
            result.deleted += 1
            result.details.append(f"notification {notification.id} (friendship {friendship_id})")

    return result


@reconciliation_pass("friend-request payload backfill")
def backfill_friend_request_targets(session: Session) -> PassResult:
    """Patch legacy friend_request payloads with targetProfileId, or drop them when unrecoverable."""
    result = PassResult(name="friend-request payload backfill")
    for notification in _friend_notifications(session, FRIEND_REQUEST):
        payload = parse_payload(notification.type, notification.data)
        if isinstance(payload, FriendRequestPayload) and payload.target_profile_id is not None:
            continue
        result.examined += 1

        friendship_id = payload.friendship_id if isinstance(payload, FriendRequestPayload) else None
        friendship = session.get(Friendship, friendship_id) if friendship_id is not None else None
        if friendship is None:
            session.delete(notification)
            result.deleted += 1
            result.details.append(f"deleted notification {notification.id}")
            continue

        # Reassign so the JSON column is marked dirty
        notification.data = {**(notification.data or {}), "targetProfileId": friendship.addressee_id}
        notification.touch()
        session.add(notification)
        result.updated += 1
        result.details.append(
            f"notification {notification.id} -> targetProfileId {friendship.addressee_id}"
        )
    return result


@reconciliation_pass("friendship-notification sync")
def sync_friend_request_notifications(session: Session) -> PassResult:
    """Create the missing friend_request notification for every pending friendship."""
    result = PassResult(name="friendship-notification sync")
    pending = list(
        session.exec(
            select(Friendship)
            .where(Friendship.status == FriendshipStatus.PENDING.value)
            .order_by(Friendship.id)
        ).all()
    )
    result.examined = len(pending)

    notified: set[int] = set()
    for notification in _friend_notifications(session, FRIEND_REQUEST):
        payload = parse_payload(notification.type, notification.data)
        if isinstance(payload, FriendRequestPayload) and payload.friendship_id is not None:
            notified.add(payload.friendship_id)

    for friendship in pending:
        if friendship.id in notified:
            continue
        requester = session.get(Profile, friendship.requester_id)
        addressee = session.get(Profile, friendship.addressee_id)
        if not requester or not addressee or requester.user_id is None or addressee.user_id is None:
            logger.warning(f"Friendship {friendship.id}: profiles or owners missing, cannot synthesize notification")
            continue
        notifications.notify_friend_request(
            session,
            recipient_id=addressee.user_id,
            sender_id=requester.user_id,
            sender_name=requester.name,
            friendship_id=friendship.id,
            target_profile_id=addressee.id,
            sender_profile_id=requester.id,
        )
        result.created += 1
        result.details.append(f"created notification for friendship {friendship.id}")
    return result


@reconciliation_pass("stale-rejection purge")
def purge_stale_rejections(session: Session, now: datetime | None = None) -> PassResult:
    """Delete rejected friendships older than the retention window so the pair can try again."""
    result = PassResult(name="stale-rejection purge")
    now = now or datetime.utcnow()
    cutoff = now - timedelta(hours=settings.REJECTED_FRIENDSHIP_RETENTION_HOURS)
    result.examined = session.exec(
        select(func.count())
        .select_from(Friendship)
        .where(Friendship.status == FriendshipStatus.REJECTED.value)
    ).one()
    outcome = session.execute(
        delete(Friendship)
        .where(
            Friendship.status == FriendshipStatus.REJECTED.value,
            Friendship.updated_at < cutoff,
        )
        .execution_options(synchronize_session="fetch")
    )
    result.deleted = outcome.rowcount or 0
    return result


def run_full_audit(session: Session) -> list[PassResult]:
    """All five passes in dependency order; stops at the first failure."""
    return [
        purge_orphaned_friendships(session),
        purge_stale_rejections(session),
        backfill_friend_request_targets(session),
        purge_orphaned_notifications(session),
        sync_friend_request_notifications(session),
    ]
