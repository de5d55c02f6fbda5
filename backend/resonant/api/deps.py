from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import select

from resonant.core.security import verify_token
from resonant.db import SessionDep
from resonant.models import Profile, User

bearer_scheme = HTTPBearer(auto_error=False)


def user_id_from_token(token: str) -> int:
    """Resolve the user id carried in an access token's ``sub`` claim."""
    payload = verify_token(token, token_type="access")
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        raise ValueError("Invalid authentication payload") from None


def get_current_user(
    session: SessionDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        user_id = user_id_from_token(credentials.credentials)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    user = session.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive or missing user",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def resolve_active_profile(session, user: User, profile_id: Optional[int]) -> Optional[Profile]:
    """
    The profile a request acts as.

    An explicit id must name a live profile owned by ``user``; without one the
    user's ``is_active`` profile is used.
    """
    if profile_id is not None:
        profile = session.get(Profile, profile_id)
        if not profile or profile.is_deleted or profile.user_id != user.id:
            return None
        return profile
    return session.exec(
        select(Profile).where(
            Profile.user_id == user.id,
            Profile.is_active == True,  # noqa: E712
            Profile.deleted_at.is_(None),
        )
    ).first()


def get_active_profile(
    session: SessionDep,
    current_user: User = Depends(get_current_user),
    x_active_profile_id: Optional[int] = Header(default=None),
) -> Profile:
    profile = resolve_active_profile(session, current_user, x_active_profile_id)
    if profile is None:
        if x_active_profile_id is not None:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile does not belong to user")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No active profile")
    return profile


def get_optional_active_profile(
    session: SessionDep,
    current_user: User = Depends(get_current_user),
    x_active_profile_id: Optional[int] = Header(default=None),
) -> Optional[Profile]:
    """Like ``get_active_profile`` but lets notification reads proceed unfiltered."""
    profile = resolve_active_profile(session, current_user, x_active_profile_id)
    if profile is None and x_active_profile_id is not None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile does not belong to user")
    return profile
