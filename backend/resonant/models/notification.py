from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


class NotificationType(str, Enum):
    FRIEND_REQUEST = "friend_request"
    FRIEND_ACCEPTED = "friend_accepted"
    POST_LIKE = "post_like"
    POST_COMMENT = "post_comment"
    PROFILE_INVITE = "profile_invite"
    PROFILE_DELETED = "profile_deleted"
    BOOKING_REQUEST = "booking_request"
    BOOKING_RESPONSE = "booking_response"


class Notification(SQLModel, table=True):
    """User notification."""

    __tablename__ = "notifications"

    id: Optional[int] = Field(default=None, primary_key=True)
    recipient_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    sender_id: Optional[int] = Field(default=None, foreign_key="users.id", nullable=True)
    type: str = Field(max_length=50, index=True)
    title: str = Field(max_length=255)
    message: str = Field(max_length=1000)
    # Type-specific payload, see resonant.schemas.payloads
    data: Optional[dict] = Field(default=None, sa_column=Column(JSON, nullable=True))
    read: bool = Field(default=False, index=True)
    email_sent: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()


class UserNotificationSetting(SQLModel, table=True):
    """Per-type delivery preference. A missing row means every channel keeps its default."""

    __tablename__ = "user_notification_settings"
    __table_args__ = (UniqueConstraint("user_id", "type", name="uq_user_notification_settings_user_type"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    type: str = Field(max_length=50)
    in_app: bool = Field(default=True)
    email: bool = Field(default=True)
    push: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
