from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from resonant.api.deps import get_current_user, get_optional_active_profile
from resonant.db import SessionDep
from resonant.models import NotificationType, Profile, User
from resonant.schemas import NotificationRead, NotificationSettingRead, NotificationSettingUpdate, UnreadCount
from resonant.services import notifications as notification_service
from resonant.services.redis_pubsub import publish_event
from resonant.services.websocket_manager import NOTIFICATION_READ, NOTIFICATIONS_UPDATED

router = APIRouter()


def _profile_filters(profile: Optional[Profile]) -> dict:
    if profile is None:
        return {"active_profile_id": None, "active_profile_type": None}
    return {"active_profile_id": profile.id, "active_profile_type": profile.type}


@router.get("/", response_model=List[NotificationRead], summary="List notifications")
def list_notifications(
    session: SessionDep,
    current_user: User = Depends(get_current_user),
    active_profile: Optional[Profile] = Depends(get_optional_active_profile),
    limit: int = Query(default=20, ge=1, le=100, description="Maximum number of notifications"),
    offset: int = Query(default=0, ge=0),
) -> List[NotificationRead]:
    """Notifications visible to the active profile, newest first."""
    return notification_service.get_user_notifications(
        session,
        current_user.id,
        limit=limit,
        offset=offset,
        **_profile_filters(active_profile),
    )


@router.get("/unread-count", response_model=UnreadCount, summary="Get unread notifications count")
def get_unread_count(
    session: SessionDep,
    current_user: User = Depends(get_current_user),
    active_profile: Optional[Profile] = Depends(get_optional_active_profile),
) -> UnreadCount:
    count = notification_service.get_unread_count(session, current_user.id, **_profile_filters(active_profile))
    return UnreadCount(count=count)


@router.patch("/mark-all-read", status_code=status.HTTP_204_NO_CONTENT, summary="Mark all notifications as read")
def mark_all_read(
    session: SessionDep,
    current_user: User = Depends(get_current_user),
) -> Response:
    notification_service.mark_all_as_read(session, current_user.id)
    publish_event(current_user.id, NOTIFICATIONS_UPDATED)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT, summary="Mark notification as read")
def mark_read(
    notification_id: int,
    session: SessionDep,
    current_user: User = Depends(get_current_user),
) -> Response:
    notification_service.mark_as_read(session, notification_id, current_user.id)
    publish_event(current_user.id, NOTIFICATION_READ, {"notificationId": notification_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete notification")
def delete_notification(
    notification_id: int,
    session: SessionDep,
    current_user: User = Depends(get_current_user),
) -> Response:
    notification_service.delete_notification(session, notification_id, current_user.id)
    publish_event(current_user.id, NOTIFICATIONS_UPDATED)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/settings", response_model=List[NotificationSettingRead], summary="List notification preferences")
def list_settings(
    session: SessionDep,
    current_user: User = Depends(get_current_user),
) -> List[NotificationSettingRead]:
    return notification_service.get_user_notification_settings(session, current_user.id)


@router.put("/settings/{type}", response_model=NotificationSettingRead, summary="Update notification preference")
def update_setting(
    type: str,
    data: NotificationSettingUpdate,
    session: SessionDep,
    current_user: User = Depends(get_current_user),
) -> NotificationSettingRead:
    if type not in {t.value for t in NotificationType}:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown notification type '{type}'")
    return notification_service.update_notification_settings(
        session, current_user.id, type, data.model_dump(exclude_unset=True)
    )
