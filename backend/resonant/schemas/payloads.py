"""
Typed notification payloads.

The ``data`` column is stored as a plain JSON object so existing clients keep
reading the same camelCase keys. In code each notification type gets its own
model; ``parse_payload`` picks the model from the notification type.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from resonant.models import NotificationType

logger = logging.getLogger(__name__)


class NotificationPayload(BaseModel):
    # Legacy rows carry extra display keys (senderProfile, senderUser, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_data(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class FriendRequestPayload(NotificationPayload):
    sender_id: Optional[int] = None
    friendship_id: Optional[int] = None
    target_profile_id: Optional[int] = None
    sender_profile_id: Optional[int] = None
    sender_profile_name: Optional[str] = None
    primary_image_url: Optional[str] = None


class FriendAcceptedPayload(NotificationPayload):
    sender_id: Optional[int] = None
    sender_profile_id: Optional[int] = None
    friendship_id: Optional[int] = None
    target_profile_id: Optional[int] = None


class PostActivityPayload(NotificationPayload):
    post_id: int
    sender_id: int


class ProfileInvitePayload(NotificationPayload):
    sender_id: int
    profile_name: str


class ProfileDeletedPayload(NotificationPayload):
    profile_name: str
    deleted_by: str
    restoration_deadline: str
    can_restore: bool = True


class BookingRequestPayload(NotificationPayload):
    artist_user_id: int
    artist_name: str
    artist_profile_name: str


class BookingResponsePayload(NotificationPayload):
    venue_user_id: int
    venue_name: str
    venue_profile_name: str
    status: str


PAYLOAD_MODELS: dict[str, type[NotificationPayload]] = {
    NotificationType.FRIEND_REQUEST.value: FriendRequestPayload,
    NotificationType.FRIEND_ACCEPTED.value: FriendAcceptedPayload,
    NotificationType.POST_LIKE.value: PostActivityPayload,
    NotificationType.POST_COMMENT.value: PostActivityPayload,
    NotificationType.PROFILE_INVITE.value: ProfileInvitePayload,
    NotificationType.PROFILE_DELETED.value: ProfileDeletedPayload,
    NotificationType.BOOKING_REQUEST.value: BookingRequestPayload,
    NotificationType.BOOKING_RESPONSE.value: BookingResponsePayload,
}


def parse_payload(type: str, data: Optional[dict]) -> NotificationPayload | dict | None:
    """
    Return the typed payload for a notification.

    Unknown types come back as the raw dict; a payload that does not validate
    against its model (broken legacy rows) comes back as ``None``.
    """
    model = PAYLOAD_MODELS.get(type)
    if model is None:
        return data
    try:
        return model.model_validate(data or {})
    except ValidationError as e:
        logger.debug(f"Payload for {type} failed validation: {e}")
        return None
