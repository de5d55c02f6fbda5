from .friendship import Friendship, FriendshipStatus
from .notification import Notification, NotificationType, UserNotificationSetting
from .profile import Profile, ProfileType
from .user import User

__all__ = [
    "Friendship",
    "FriendshipStatus",
    "Notification",
    "NotificationType",
    "Profile",
    "ProfileType",
    "User",
    "UserNotificationSetting",
]
