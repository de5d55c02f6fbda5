from .friendship import (
    FriendRequestCreate,
    FriendRequestRead,
    FriendshipRead,
    ProfileSummary,
)
from .notification import (
    NotificationRead,
    NotificationSettingRead,
    NotificationSettingUpdate,
    SenderSummary,
    UnreadCount,
)
from .payloads import (
    BookingRequestPayload,
    BookingResponsePayload,
    FriendAcceptedPayload,
    FriendRequestPayload,
    NotificationPayload,
    PostActivityPayload,
    ProfileDeletedPayload,
    ProfileInvitePayload,
    parse_payload,
)

__all__ = [
    "BookingRequestPayload",
    "BookingResponsePayload",
    "FriendAcceptedPayload",
    "FriendRequestCreate",
    "FriendRequestPayload",
    "FriendRequestRead",
    "FriendshipRead",
    "NotificationPayload",
    "NotificationRead",
    "NotificationSettingRead",
    "NotificationSettingUpdate",
    "PostActivityPayload",
    "ProfileDeletedPayload",
    "ProfileInvitePayload",
    "ProfileSummary",
    "SenderSummary",
    "UnreadCount",
    "parse_payload",
]
