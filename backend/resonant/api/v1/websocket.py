"""WebSocket endpoint for real-time notifications."""

import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from sqlmodel import Session

from resonant.api.deps import resolve_active_profile, user_id_from_token
from resonant.db import engine
from resonant.models import User
from resonant.services.websocket_manager import PROFILE_ACTIVATED, manager

logger = logging.getLogger(__name__)

router = APIRouter()


def _authorize(token: str, profile_id: Optional[int]) -> tuple[int, Optional[int]]:
    """
    Resolve the user behind ``token`` and the profile the socket acts as.

    Token is passed as query parameter since browsers cannot set headers on
    WebSocket handshakes.
    """
    user_id = user_id_from_token(token)
    with Session(engine) as session:
        user = session.get(User, user_id)
        if not user or not user.is_active:
            raise ValueError(f"Inactive or missing user {user_id}")
        profile = resolve_active_profile(session, user, profile_id)
        if profile_id is not None and profile is None:
            raise ValueError(f"Profile {profile_id} does not belong to user {user_id}")
        return user_id, profile.id if profile else None


def _owns_profile(user_id: int, profile_id: int) -> bool:
    with Session(engine) as session:
        user = session.get(User, user_id)
        return user is not None and resolve_active_profile(session, user, profile_id) is not None


@router.websocket("/notifications")
async def websocket_notifications(
    websocket: WebSocket,
    token: str = Query(...),
    profile_id: Optional[int] = Query(default=None),
):
    """
    WebSocket endpoint for real-time notifications.

    Client connects with: /api/v1/ws/notifications?token=JWT&profile_id=N

    Server messages are ``{"type": <event>, "data": {...}}``. The client may
    send ``ping`` or ``{"type": "profile_activated", "profileId": N}``.
    """
    try:
        user_id, active_profile_id = _authorize(token, profile_id)
    except ValueError as e:
        logger.warning(f"WebSocket auth error: {e}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    client = await manager.connect(websocket, user_id, active_profile_id)

    try:
        await websocket.send_json({
            "type": "connected",
            "data": {"userId": user_id, "profileId": active_profile_id},
        })

        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                logger.info(f"WebSocket disconnected gracefully for user {user_id}")
                break
            except ValueError:
                # Plain-text keepalive
                await websocket.send_json({"type": "pong"})
                continue

            if message == "ping" or (isinstance(message, dict) and message.get("type") == "ping"):
                await websocket.send_json({"type": "pong"})
            elif isinstance(message, dict) and message.get("type") == PROFILE_ACTIVATED:
                requested = message.get("profileId")
                if isinstance(requested, int) and _owns_profile(user_id, requested):
                    await manager.set_active_profile(client, requested)
                else:
                    await websocket.send_json({"type": "error", "data": {"detail": "Invalid profile"}})

    except Exception as e:
        logger.error(f"WebSocket error for user {user_id}: {e}", exc_info=True)

    finally:
        await manager.disconnect(client)
        logger.info(f"WebSocket connection closed for user {user_id}")
