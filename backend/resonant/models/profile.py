from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel


class ProfileType(str, Enum):
    AUDIENCE = "audience"
    ARTIST = "artist"
    VENUE = "venue"


class Profile(SQLModel, table=True):
    """Identity a user operates as (audience, artist or venue)."""

    __tablename__ = "profiles"

    id: Optional[int] = Field(default=None, primary_key=True)
    # Nullable for shared artist/venue profiles
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", nullable=True, index=True)
    type: str = Field(max_length=20)
    name: str = Field(max_length=255)
    profile_image_url: Optional[str] = Field(default=None, max_length=500)
    visibility: str = Field(default="public", max_length=20)
    is_active: bool = Field(default=False)
    deleted_at: Optional[datetime] = Field(default=None, nullable=True)
    deleted_by: Optional[int] = Field(default=None, foreign_key="users.id", nullable=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
