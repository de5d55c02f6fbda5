from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from .notification import CamelModel


class ProfileSummary(CamelModel):
    id: int
    user_id: Optional[int] = None
    type: str
    name: str
    profile_image_url: Optional[str] = None
    visibility: str


class FriendshipRead(CamelModel):
    id: int
    requester_id: int
    addressee_id: int
    status: str
    created_at: datetime
    updated_at: datetime


class FriendRequestCreate(CamelModel):
    addressee_id: int = Field(gt=0)


class FriendRequestRead(CamelModel):
    """A pending request together with the profile on the other side."""

    profile: ProfileSummary
    friendship: FriendshipRead
