from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class SenderSummary(CamelModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


class NotificationRead(CamelModel):
    id: int
    recipient_id: int
    sender_id: Optional[int] = None
    type: str
    title: str
    message: str
    data: Optional[dict[str, Any]] = None
    read: bool
    email_sent: bool
    created_at: datetime
    updated_at: datetime
    sender: Optional[SenderSummary] = None


class UnreadCount(BaseModel):
    count: int


class NotificationSettingRead(CamelModel):
    id: int
    user_id: int
    type: str
    in_app: bool
    email: bool
    push: bool
    updated_at: datetime


class NotificationSettingUpdate(CamelModel):
    in_app: Optional[bool] = None
    email: Optional[bool] = None
    push: Optional[bool] = None
