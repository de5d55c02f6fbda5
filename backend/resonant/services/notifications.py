"""
Notification service: creation (with optional email copy), profile-aware
filtering, unread counts, read/delete operations, preferences and the typed
constructors used by the rest of the platform.

``create_notification`` and the ``notify_*`` helpers only flush; they run
inside the caller's unit of work and the caller commits. The standalone
operations (mark read, delete, settings upsert) commit themselves.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import and_, delete, func, or_, update
from sqlmodel import Session, select

from resonant.core.config import settings
from resonant.models import (
    Friendship,
    FriendshipStatus,
    Notification,
    NotificationType,
    Profile,
    User,
    UserNotificationSetting,
)
from resonant.schemas import (
    BookingRequestPayload,
    BookingResponsePayload,
    FriendAcceptedPayload,
    FriendRequestPayload,
    NotificationPayload,
    NotificationRead,
    PostActivityPayload,
    ProfileDeletedPayload,
    ProfileInvitePayload,
    SenderSummary,
)
from resonant.services import email_notify

logger = logging.getLogger(__name__)

FRIEND_REQUEST = NotificationType.FRIEND_REQUEST.value
FRIEND_ACCEPTED = NotificationType.FRIEND_ACCEPTED.value
BOOKING_REQUEST = NotificationType.BOOKING_REQUEST.value
BOOKING_RESPONSE = NotificationType.BOOKING_RESPONSE.value

COMMON_TYPES = (
    FRIEND_REQUEST,
    FRIEND_ACCEPTED,
    NotificationType.PROFILE_INVITE.value,
    NotificationType.PROFILE_DELETED.value,
)
POST_TYPES = (NotificationType.POST_LIKE.value, NotificationType.POST_COMMENT.value)
BOOKING_TYPES = (BOOKING_REQUEST, BOOKING_RESPONSE)

RELEVANT_TYPES: dict[str, tuple[str, ...]] = {
    "artist": COMMON_TYPES + BOOKING_TYPES + POST_TYPES,
    "venue": COMMON_TYPES + BOOKING_TYPES + POST_TYPES,
    "audience": COMMON_TYPES + POST_TYPES,
}


def get_relevant_notification_types(profile_type: str) -> tuple[str, ...]:
    """Notification types surfaced while a profile of ``profile_type`` is active."""
    return RELEVANT_TYPES.get(profile_type, COMMON_TYPES)


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


def create_notification(
    session: Session,
    recipient_id: int,
    type: str,
    title: str,
    message: str,
    sender_id: int | None = None,
    data: NotificationPayload | dict | None = None,
) -> Notification:
    """Create a notification and send an email copy when the recipient wants one."""
    if isinstance(data, NotificationPayload):
        data = data.to_data()
    notification = Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=type,
        title=title,
        message=message,
        data=data,
    )
    session.add(notification)
    session.flush()
    logger.info(f"Created {type} notification {notification.id} for user {recipient_id}")

    if should_send_email_notification(session, recipient_id, type):
        _send_email_notification(session, notification)

    return notification


def should_send_email_notification(session: Session, user_id: int, type: str) -> bool:
    user = session.get(User, user_id)
    if not user or not user.email_notifications:
        return False

    setting = session.exec(
        select(UserNotificationSetting).where(
            UserNotificationSetting.user_id == user_id,
            UserNotificationSetting.type == type,
        )
    ).first()
    return setting.email if setting else True


def _send_email_notification(session: Session, notification: Notification) -> None:
    try:
        recipient = session.get(User, notification.recipient_id)
        if not recipient:
            return
        result = email_notify.send_notification_email(
            recipient.email,
            recipient.display_name,
            notification.title,
            notification.message,
            notification.type,
            notification.data,
        )
        if result.success:
            notification.email_sent = True
            session.add(notification)
        else:
            logger.warning(
                f"Email copy of notification {notification.id} not sent: {result.error}"
            )
    except Exception as e:
        logger.error(f"Failed to send email notification {notification.id}: {e}", exc_info=True)


# ---------------------------------------------------------------------------
# Filtering and queries
# ---------------------------------------------------------------------------


def _visibility_conditions(
    active_profile_id: int | None,
    active_profile_type: str | None,
) -> list[Any]:
    """
    SQL predicates deciding which of a user's notifications are shown.

    Friend notifications must be backed by a live friendship: a
    ``friend_request`` by the pending friendship named in its payload, a
    ``friend_accepted`` by the accepted one. Legacy ``friend_accepted`` rows
    without a ``friendshipId`` are shown only while any friendship exists.
    """
    friendship_id = Notification.data["friendshipId"].as_integer()
    target_profile_id = Notification.data["targetProfileId"].as_integer()

    pending_friendship = (
        select(Friendship.id)
        .where(Friendship.id == friendship_id, Friendship.status == FriendshipStatus.PENDING.value)
        .exists()
    )
    accepted_friendship = (
        select(Friendship.id)
        .where(Friendship.id == friendship_id, Friendship.status == FriendshipStatus.ACCEPTED.value)
        .exists()
    )
    any_friendship = select(Friendship.id).exists()

    conditions: list[Any] = [
        or_(Notification.type != FRIEND_REQUEST, pending_friendship),
        or_(
            Notification.type != FRIEND_ACCEPTED,
            and_(friendship_id.is_not(None), accepted_friendship),
            and_(friendship_id.is_(None), any_friendship),
        ),
    ]

    if active_profile_type is not None:
        conditions.append(Notification.type.in_(get_relevant_notification_types(active_profile_type)))
        if active_profile_type != "venue":
            conditions.append(Notification.type != BOOKING_REQUEST)
        if active_profile_type != "artist":
            conditions.append(Notification.type != BOOKING_RESPONSE)

    if active_profile_id is not None:
        conditions.append(
            or_(Notification.type != FRIEND_REQUEST, target_profile_id == active_profile_id)
        )
        conditions.append(
            or_(
                Notification.type != FRIEND_ACCEPTED,
                target_profile_id.is_(None),
                target_profile_id == active_profile_id,
            )
        )

    return conditions


def _to_read(notification: Notification, sender: User | None) -> NotificationRead:
    result = NotificationRead.model_validate(notification)
    if sender is not None:
        result.sender = SenderSummary.model_validate(sender)
    return result


def get_user_notifications(
    session: Session,
    user_id: int,
    limit: int | None = 20,
    offset: int = 0,
    active_profile_id: int | None = None,
    active_profile_type: str | None = None,
) -> list[NotificationRead]:
    """Notifications for ``user_id``, newest first, filtered for the active profile."""
    statement = (
        select(Notification, User)
        .join(User, Notification.sender_id == User.id, isouter=True)
        .where(
            Notification.recipient_id == user_id,
            *_visibility_conditions(active_profile_id, active_profile_type),
        )
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
    )
    if limit is not None:
        statement = statement.limit(limit)
    rows = session.exec(statement).all()
    return [_to_read(notification, sender) for notification, sender in rows]


def get_unread_count(
    session: Session,
    user_id: int,
    active_profile_id: int | None = None,
    active_profile_type: str | None = None,
) -> int:
    """Unread count under exactly the same filters as ``get_user_notifications``."""
    statement = (
        select(func.count())
        .select_from(Notification)
        .where(
            Notification.recipient_id == user_id,
            Notification.read == False,  # noqa: E712
            *_visibility_conditions(active_profile_id, active_profile_type),
        )
    )
    count = session.exec(statement).one()
    logger.debug(
        f"Unread count for user {user_id}, profile {active_profile_id} ({active_profile_type}): {count}"
    )
    return count


def mark_as_read(session: Session, notification_id: int, user_id: int) -> None:
    """Mark one notification read. Ids that are missing or not owned match nothing."""
    session.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.recipient_id == user_id)
        .values(read=True, updated_at=datetime.utcnow())
    )
    session.commit()


def mark_all_as_read(session: Session, user_id: int) -> None:
    session.execute(
        update(Notification)
        .where(Notification.recipient_id == user_id, Notification.read == False)  # noqa: E712
        .values(read=True, updated_at=datetime.utcnow())
    )
    session.commit()


def delete_notification(session: Session, notification_id: int, user_id: int) -> None:
    """Delete one notification. Ids that are missing or not owned match nothing."""
    session.execute(
        delete(Notification).where(
            Notification.id == notification_id,
            Notification.recipient_id == user_id,
        )
    )
    session.commit()


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


def get_user_notification_settings(session: Session, user_id: int) -> list[UserNotificationSetting]:
    return list(
        session.exec(
            select(UserNotificationSetting)
            .where(UserNotificationSetting.user_id == user_id)
            .order_by(UserNotificationSetting.type)
        ).all()
    )


def update_notification_settings(
    session: Session,
    user_id: int,
    type: str,
    settings_update: dict[str, Any],
) -> UserNotificationSetting:
    """Upsert the preference row for (user, type). Unknown keys are ignored."""
    allowed = {k: v for k, v in settings_update.items() if k in ("in_app", "email", "push") and v is not None}
    setting = session.exec(
        select(UserNotificationSetting).where(
            UserNotificationSetting.user_id == user_id,
            UserNotificationSetting.type == type,
        )
    ).first()
    if setting is None:
        setting = UserNotificationSetting(user_id=user_id, type=type, **allowed)
    else:
        for key, value in allowed.items():
            setattr(setting, key, value)
        setting.updated_at = datetime.utcnow()
    session.add(setting)
    session.commit()
    session.refresh(setting)
    return setting


# ---------------------------------------------------------------------------
# Typed constructors
# ---------------------------------------------------------------------------


def notify_friend_request(
    session: Session,
    recipient_id: int,
    sender_id: int,
    sender_name: str,
    friendship_id: int,
    target_profile_id: int,
    sender_profile_id: int | None = None,
) -> Notification:
    primary_image_url = None
    if sender_profile_id is not None:
        sender_profile = session.get(Profile, sender_profile_id)
        if sender_profile:
            primary_image_url = sender_profile.profile_image_url
    if not primary_image_url:
        sender_user = session.get(User, sender_id)
        if sender_user:
            primary_image_url = sender_user.profile_image_url

    payload = FriendRequestPayload(
        sender_id=sender_id,
        friendship_id=friendship_id,
        target_profile_id=target_profile_id,
        sender_profile_id=sender_profile_id,
        sender_profile_name=sender_name,
        primary_image_url=primary_image_url,
    )
    return create_notification(
        session,
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=FRIEND_REQUEST,
        title="New Friend Request",
        message=f"{sender_name} sent you a friend request",
        data=payload,
    )


def notify_friend_accepted(
    session: Session,
    recipient_id: int,
    sender_id: int,
    sender_name: str,
    sender_profile_id: int | None = None,
    friendship_id: int | None = None,
    target_profile_id: int | None = None,
) -> Notification:
    payload = FriendAcceptedPayload(
        sender_id=sender_id,
        sender_profile_id=sender_profile_id,
        friendship_id=friendship_id,
        target_profile_id=target_profile_id,
    )
    return create_notification(
        session,
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=FRIEND_ACCEPTED,
        title="Friend Request Accepted",
        message=f"{sender_name} accepted your friend request",
        data=payload,
    )


def notify_post_like(
    session: Session,
    recipient_id: int,
    sender_id: int,
    sender_name: str,
    post_id: int,
) -> Notification:
    return create_notification(
        session,
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=NotificationType.POST_LIKE.value,
        title="Post Liked",
        message=f"{sender_name} liked your post",
        data=PostActivityPayload(post_id=post_id, sender_id=sender_id),
    )


def notify_post_comment(
    session: Session,
    recipient_id: int,
    sender_id: int,
    sender_name: str,
    post_id: int,
) -> Notification:
    return create_notification(
        session,
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=NotificationType.POST_COMMENT.value,
        title="New Comment",
        message=f"{sender_name} commented on your post",
        data=PostActivityPayload(post_id=post_id, sender_id=sender_id),
    )


def notify_profile_invite(
    session: Session,
    recipient_email: str,
    sender_id: int,
    sender_name: str,
    profile_name: str,
) -> Optional[Notification]:
    """Invite the user registered under ``recipient_email``; no-op when there is none."""
    recipient = session.exec(select(User).where(User.email == recipient_email)).first()
    if not recipient:
        logger.debug(f"No user with email {recipient_email}; profile invite skipped")
        return None
    return create_notification(
        session,
        recipient_id=recipient.id,
        sender_id=sender_id,
        type=NotificationType.PROFILE_INVITE.value,
        title="Profile Invitation",
        message=f"{sender_name} invited you to join {profile_name}",
        data=ProfileInvitePayload(sender_id=sender_id, profile_name=profile_name),
    )


def restoration_deadline(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now + timedelta(days=settings.PROFILE_RESTORATION_DAYS)


def notify_profile_deleted(
    session: Session,
    recipient_ids: Iterable[int],
    profile_name: str,
    deleted_by: str,
) -> list[Notification]:
    deadline = restoration_deadline()
    deadline_iso = deadline.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    created = []
    for recipient_id in recipient_ids:
        created.append(
            create_notification(
                session,
                recipient_id=recipient_id,
                type=NotificationType.PROFILE_DELETED.value,
                title="Profile Deleted",
                message=(
                    f'The profile "{profile_name}" has been deleted by {deleted_by}. '
                    f"It can be restored until {deadline.strftime('%m/%d/%Y')}."
                ),
                data=ProfileDeletedPayload(
                    profile_name=profile_name,
                    deleted_by=deleted_by,
                    restoration_deadline=deadline_iso,
                    can_restore=True,
                ),
            )
        )
    return created


def notify_booking_request(
    session: Session,
    venue_user_id: int,
    artist_user_id: int,
    artist_name: str,
    artist_profile_name: str,
) -> Notification:
    return create_notification(
        session,
        recipient_id=venue_user_id,
        sender_id=artist_user_id,
        type=BOOKING_REQUEST,
        title="New Booking Request",
        message=f"{artist_name} ({artist_profile_name}) wants to book your venue",
        data=BookingRequestPayload(
            artist_user_id=artist_user_id,
            artist_name=artist_name,
            artist_profile_name=artist_profile_name,
        ),
    )


def notify_booking_response(
    session: Session,
    artist_user_id: int,
    venue_user_id: int,
    venue_name: str,
    venue_profile_name: str,
    status: str,
) -> Notification:
    status_text = "accepted" if status == "accepted" else "declined"
    return create_notification(
        session,
        recipient_id=artist_user_id,
        sender_id=venue_user_id,
        type=BOOKING_RESPONSE,
        title=f"Booking Request {status_text.capitalize()}",
        message=f"{venue_name} ({venue_profile_name}) has {status_text} your booking request",
        data=BookingResponsePayload(
            venue_user_id=venue_user_id,
            venue_name=venue_name,
            venue_profile_name=venue_profile_name,
            status=status,
        ),
    )
