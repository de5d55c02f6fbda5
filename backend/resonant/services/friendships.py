"""
Friendship lifecycle: none -> pending -> accepted | rejected.

Every transition writes its notification side effects in the same
transaction as the status change, so a friend_request notification never
outlives the pending friendship it points at.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import and_, delete, or_
from sqlmodel import Session, select

from resonant.models import Friendship, FriendshipStatus, Notification, NotificationType, Profile, User
from resonant.services import notifications

logger = logging.getLogger(__name__)


class FriendshipError(Exception):
    """Base error for friendship transitions."""


class FriendshipNotFound(FriendshipError):
    pass


class FriendshipConflict(FriendshipError):
    pass


class FriendshipForbidden(FriendshipError):
    pass


def _pair_clause(profile_a: int, profile_b: int):
    return or_(
        and_(Friendship.requester_id == profile_a, Friendship.addressee_id == profile_b),
        and_(Friendship.requester_id == profile_b, Friendship.addressee_id == profile_a),
    )


def get_friendship_status(session: Session, profile_a: int, profile_b: int) -> Optional[Friendship]:
    """Current edge between two profiles in either direction, if any."""
    return session.exec(
        select(Friendship)
        .where(_pair_clause(profile_a, profile_b))
        .order_by(Friendship.updated_at.desc(), Friendship.id.desc())
    ).first()


def get_friends(session: Session, profile_id: int) -> list[Profile]:
    statement = (
        select(Profile)
        .join(
            Friendship,
            or_(
                and_(Friendship.requester_id == profile_id, Profile.id == Friendship.addressee_id),
                and_(Friendship.addressee_id == profile_id, Profile.id == Friendship.requester_id),
            ),
        )
        .where(Friendship.status == FriendshipStatus.ACCEPTED.value, Profile.deleted_at.is_(None))
        .order_by(Profile.name)
    )
    return list(session.exec(statement).all())


def get_friend_requests(session: Session, profile_id: int) -> list[tuple[Profile, Friendship]]:
    """Incoming pending requests with the requester's profile."""
    statement = (
        select(Profile, Friendship)
        .join(Friendship, Profile.id == Friendship.requester_id)
        .where(
            Friendship.addressee_id == profile_id,
            Friendship.status == FriendshipStatus.PENDING.value,
        )
        .order_by(Friendship.created_at.desc())
    )
    return list(session.exec(statement).all())


def get_sent_friend_requests(session: Session, profile_id: int) -> list[tuple[Profile, Friendship]]:
    """Outgoing pending requests with the addressee's profile."""
    statement = (
        select(Profile, Friendship)
        .join(Friendship, Profile.id == Friendship.addressee_id)
        .where(
            Friendship.requester_id == profile_id,
            Friendship.status == FriendshipStatus.PENDING.value,
        )
        .order_by(Friendship.created_at.desc())
    )
    return list(session.exec(statement).all())


def _delete_friend_request_notifications(session: Session, friendship_id: int) -> int:
    result = session.execute(
        delete(Notification).where(
            Notification.type == NotificationType.FRIEND_REQUEST.value,
            Notification.data["friendshipId"].as_integer() == friendship_id,
        )
    )
    return result.rowcount or 0


def _sender_user_id(session: Session, profile: Profile) -> int | None:
    if profile.user_id is None:
        return None
    user = session.get(User, profile.user_id)
    return user.id if user else None


def send_friend_request(session: Session, requester: Profile, addressee_id: int) -> Friendship:
    """Create a pending friendship and the friend_request notification for the addressee."""
    if requester.id == addressee_id:
        raise FriendshipConflict("Cannot send a friend request to yourself")

    addressee = session.get(Profile, addressee_id)
    if not addressee or addressee.is_deleted:
        raise FriendshipNotFound(f"Profile {addressee_id} not found")

    existing = session.exec(
        select(Friendship).where(_pair_clause(requester.id, addressee_id))
    ).all()
    for friendship in existing:
        if friendship.status in (FriendshipStatus.PENDING.value, FriendshipStatus.ACCEPTED.value):
            raise FriendshipConflict("Friendship already exists")
    try:
        # Rejected edges are replaced by the new request
        for stale in existing:
            _delete_friend_request_notifications(session, stale.id)
            session.delete(stale)

        friendship = Friendship(requester_id=requester.id, addressee_id=addressee_id)
        session.add(friendship)
        session.flush()

        sender_id = _sender_user_id(session, requester)
        if addressee.user_id is not None and sender_id is not None:
            notifications.notify_friend_request(
                session,
                recipient_id=addressee.user_id,
                sender_id=sender_id,
                sender_name=requester.name,
                friendship_id=friendship.id,
                target_profile_id=addressee.id,
                sender_profile_id=requester.id,
            )
        else:
            logger.warning(
                f"Friendship {friendship.id}: no owning user on one side, friend_request notification skipped"
            )
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(friendship)
    logger.info(f"Friend request {friendship.id}: profile {requester.id} -> profile {addressee_id}")
    return friendship


def _load_pending_for_addressee(session: Session, friendship_id: int, actor: Profile) -> Friendship:
    friendship = session.get(Friendship, friendship_id)
    if not friendship:
        raise FriendshipNotFound(f"Friend request {friendship_id} not found")
    if friendship.addressee_id != actor.id:
        raise FriendshipForbidden("Only the addressee can respond to a friend request")
    if friendship.status != FriendshipStatus.PENDING.value:
        raise FriendshipConflict(f"Friend request {friendship_id} is already {friendship.status}")
    return friendship


def accept_friend_request(session: Session, friendship_id: int, actor: Profile) -> Friendship:
    """pending -> accepted: drop the request notification, notify the requester."""
    friendship = _load_pending_for_addressee(session, friendship_id, actor)
    try:
        friendship.status = FriendshipStatus.ACCEPTED.value
        friendship.touch()
        session.add(friendship)
        removed = _delete_friend_request_notifications(session, friendship.id)

        requester = session.get(Profile, friendship.requester_id)
        sender_id = _sender_user_id(session, actor)
        if requester and requester.user_id is not None and sender_id is not None:
            notifications.notify_friend_accepted(
                session,
                recipient_id=requester.user_id,
                sender_id=sender_id,
                sender_name=actor.name,
                sender_profile_id=actor.id,
                friendship_id=friendship.id,
                target_profile_id=requester.id,
            )
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(friendship)
    logger.info(f"Friend request {friendship.id} accepted; removed {removed} request notification(s)")
    return friendship


def reject_friend_request(session: Session, friendship_id: int, actor: Profile) -> Friendship:
    """pending -> rejected: drop the request notification."""
    friendship = _load_pending_for_addressee(session, friendship_id, actor)
    try:
        friendship.status = FriendshipStatus.REJECTED.value
        friendship.touch()
        session.add(friendship)
        removed = _delete_friend_request_notifications(session, friendship.id)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(friendship)
    logger.info(f"Friend request {friendship.id} rejected; removed {removed} request notification(s)")
    return friendship
