from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from resonant.api.deps import get_active_profile
from resonant.core.config import settings
from resonant.core.limiter import limiter
from resonant.db import SessionDep
from resonant.models import Friendship, Profile
from resonant.schemas import FriendRequestCreate, FriendRequestRead, FriendshipRead, ProfileSummary
from resonant.services import friendships as friendship_service
from resonant.services.redis_pubsub import publish_event
from resonant.services.websocket_manager import (
    FRIEND_REQUEST_ACCEPTED,
    FRIEND_REQUEST_REJECTED,
    FRIEND_REQUEST_SENT,
    NOTIFICATION_RECEIVED,
    NOTIFICATIONS_UPDATED,
)

router = APIRouter()

ERROR_STATUS = {
    friendship_service.FriendshipNotFound: status.HTTP_404_NOT_FOUND,
    friendship_service.FriendshipConflict: status.HTTP_409_CONFLICT,
    friendship_service.FriendshipForbidden: status.HTTP_403_FORBIDDEN,
}


def _http_error(exc: friendship_service.FriendshipError) -> HTTPException:
    return HTTPException(status_code=ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST), detail=str(exc))


def _request_rows(rows) -> List[FriendRequestRead]:
    return [
        FriendRequestRead(
            profile=ProfileSummary.model_validate(profile),
            friendship=FriendshipRead.model_validate(friendship),
        )
        for profile, friendship in rows
    ]


def _owner_of(session, profile_id: int) -> Optional[int]:
    profile = session.get(Profile, profile_id)
    return profile.user_id if profile else None


def _event_data(friendship: Friendship, target_profile_id: int) -> dict:
    return {
        "friendshipId": friendship.id,
        "requesterId": friendship.requester_id,
        "addresseeId": friendship.addressee_id,
        "targetProfileId": target_profile_id,
    }


@router.get("/friends", response_model=List[ProfileSummary], summary="List friends of the active profile")
def list_friends(
    session: SessionDep,
    active_profile: Profile = Depends(get_active_profile),
) -> List[ProfileSummary]:
    return friendship_service.get_friends(session, active_profile.id)


@router.get(
    "/friends/status/{profile_id}",
    response_model=Optional[FriendshipRead],
    summary="Friendship between the active profile and another profile",
)
def friendship_status(
    profile_id: int,
    session: SessionDep,
    active_profile: Profile = Depends(get_active_profile),
) -> Optional[FriendshipRead]:
    return friendship_service.get_friendship_status(session, active_profile.id, profile_id)


@router.get("/friend-requests", response_model=List[FriendRequestRead], summary="Incoming friend requests")
def list_friend_requests(
    session: SessionDep,
    active_profile: Profile = Depends(get_active_profile),
) -> List[FriendRequestRead]:
    return _request_rows(friendship_service.get_friend_requests(session, active_profile.id))


@router.get("/friend-requests/sent", response_model=List[FriendRequestRead], summary="Outgoing friend requests")
def list_sent_friend_requests(
    session: SessionDep,
    active_profile: Profile = Depends(get_active_profile),
) -> List[FriendRequestRead]:
    return _request_rows(friendship_service.get_sent_friend_requests(session, active_profile.id))


@router.post(
    "/friend-requests",
    response_model=FriendshipRead,
    status_code=status.HTTP_201_CREATED,
    summary="Send a friend request",
)
@limiter.limit(settings.FRIEND_REQUEST_RATE_LIMIT)
def send_friend_request(
    request: Request,
    data: FriendRequestCreate,
    session: SessionDep,
    active_profile: Profile = Depends(get_active_profile),
) -> FriendshipRead:
    try:
        friendship = friendship_service.send_friend_request(session, active_profile, data.addressee_id)
    except friendship_service.FriendshipError as exc:
        raise _http_error(exc) from None

    recipient_id = _owner_of(session, friendship.addressee_id)
    if recipient_id is not None:
        event_data = _event_data(friendship, friendship.addressee_id)
        publish_event(recipient_id, FRIEND_REQUEST_SENT, event_data)
        publish_event(recipient_id, NOTIFICATION_RECEIVED, event_data)
    return friendship


@router.post(
    "/friend-requests/{friendship_id}/accept",
    response_model=FriendshipRead,
    summary="Accept a friend request",
)
def accept_friend_request(
    friendship_id: int,
    session: SessionDep,
    active_profile: Profile = Depends(get_active_profile),
) -> FriendshipRead:
    try:
        friendship = friendship_service.accept_friend_request(session, friendship_id, active_profile)
    except friendship_service.FriendshipError as exc:
        raise _http_error(exc) from None

    if active_profile.user_id is not None:
        publish_event(active_profile.user_id, NOTIFICATIONS_UPDATED)
    recipient_id = _owner_of(session, friendship.requester_id)
    if recipient_id is not None:
        event_data = _event_data(friendship, friendship.requester_id)
        publish_event(recipient_id, FRIEND_REQUEST_ACCEPTED, event_data)
        publish_event(recipient_id, NOTIFICATION_RECEIVED, event_data)
    return friendship


@router.post(
    "/friend-requests/{friendship_id}/reject",
    response_model=FriendshipRead,
    summary="Reject a friend request",
)
def reject_friend_request(
    friendship_id: int,
    session: SessionDep,
    active_profile: Profile = Depends(get_active_profile),
) -> FriendshipRead:
    try:
        friendship = friendship_service.reject_friend_request(session, friendship_id, active_profile)
    except friendship_service.FriendshipError as exc:
        raise _http_error(exc) from None

    if active_profile.user_id is not None:
        publish_event(active_profile.user_id, NOTIFICATIONS_UPDATED)
    recipient_id = _owner_of(session, friendship.requester_id)
    if recipient_id is not None:
        publish_event(recipient_id, FRIEND_REQUEST_REJECTED, _event_data(friendship, friendship.requester_id))
    return friendship
