"""
WebSocket connection manager for real-time notifications.
Tracks sessions per user together with the profile each session is acting
as, and debounces refresh hints so bursts of events reach the client once.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Set

from fastapi import WebSocket

from resonant.core.config import settings

logger = logging.getLogger(__name__)

NOTIFICATION_RECEIVED = "notification_received"
NOTIFICATION_READ = "notification_read"
FRIEND_REQUEST_SENT = "friend_request_sent"
FRIEND_REQUEST_ACCEPTED = "friend_request_accepted"
FRIEND_REQUEST_REJECTED = "friend_request_rejected"
PROFILE_ACTIVATED = "profile_activated"
NOTIFICATIONS_UPDATED = "notifications_updated"


@dataclass(eq=False)
class ClientSession:
    websocket: WebSocket
    user_id: int
    profile_id: Optional[int] = None


class ConnectionManager:
    """Manages WebSocket connections for real-time notifications."""

    def __init__(self, debounce_seconds: float | None = None):
        # {user_id: {session1, session2, ...}}
        self.active_connections: Dict[int, Set[ClientSession]] = {}
        self._lock = asyncio.Lock()
        self._pending_refresh: Dict[int, asyncio.Task] = {}
        self.debounce_seconds = (
            settings.NOTIFICATION_REFRESH_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )

    async def connect(self, websocket: WebSocket, user_id: int, profile_id: Optional[int] = None) -> ClientSession:
        """Accept WebSocket connection and add to active connections."""
        await websocket.accept()
        session = ClientSession(websocket=websocket, user_id=user_id, profile_id=profile_id)

        async with self._lock:
            self.active_connections.setdefault(user_id, set()).add(session)
            total = len(self.active_connections[user_id])

        logger.info(f"WebSocket connected: user_id={user_id}, profile_id={profile_id}, total_connections={total}")
        return session

    async def disconnect(self, session: ClientSession):
        """Remove WebSocket connection from active connections."""
        async with self._lock:
            sessions = self.active_connections.get(session.user_id)
            if sessions is not None:
                sessions.discard(session)
                if not sessions:
                    del self.active_connections[session.user_id]
                    task = self._pending_refresh.pop(session.user_id, None)
                    if task:
                        task.cancel()

        logger.info(f"WebSocket disconnected: user_id={session.user_id}")

    async def set_active_profile(self, session: ClientSession, profile_id: int):
        """Re-key a session to another profile and confirm the switch to the client."""
        session.profile_id = profile_id
        await session.websocket.send_json({"type": PROFILE_ACTIVATED, "data": {"profileId": profile_id}})
        logger.debug(f"User {session.user_id} switched session to profile {profile_id}")

    async def send_personal_message(self, message: dict, user_id: int, profile_id: Optional[int] = None):
        """
        Send message to the sessions of a user.

        With ``profile_id`` sessions acting as another profile are skipped.
        """
        if user_id not in self.active_connections:
            logger.debug(f"No active connections for user {user_id}")
            return

        disconnected = []
        targets = [
            s for s in list(self.active_connections[user_id])
            if profile_id is None or s.profile_id in (None, profile_id)
        ]

        for session in targets:
            try:
                await session.websocket.send_json(message)
                logger.debug(f"Message sent to user {user_id}: {message.get('type')}")
            except Exception as e:
                logger.error(f"Error sending message to user {user_id}: {e}")
                disconnected.append(session)

        if disconnected:
            async with self._lock:
                sessions = self.active_connections.get(user_id, set())
                for session in disconnected:
                    sessions.discard(session)
                if not sessions:
                    self.active_connections.pop(user_id, None)

    def schedule_refresh(self, user_id: int):
        """
        Queue a ``notifications_updated`` hint for a user.

        Calls within the debounce window collapse into a single message sent
        once the window has elapsed since the first call.
        """
        if user_id in self._pending_refresh or user_id not in self.active_connections:
            return
        self._pending_refresh[user_id] = asyncio.create_task(self._flush_refresh(user_id))

    async def _flush_refresh(self, user_id: int):
        try:
            await asyncio.sleep(self.debounce_seconds)
        finally:
            self._pending_refresh.pop(user_id, None)
        await self.send_personal_message({"type": NOTIFICATIONS_UPDATED}, user_id)

    async def dispatch(self, user_id: int, event: str, data: dict | None = None):
        """Deliver an event from the pub/sub channel, then queue a refresh hint."""
        data = data or {}
        target_profile = data.get("targetProfileId")
        await self.send_personal_message({"type": event, "data": data}, user_id, profile_id=target_profile)
        if event != NOTIFICATIONS_UPDATED:
            self.schedule_refresh(user_id)

    def get_active_users(self) -> Set[int]:
        """Get set of user IDs with active WebSocket connections."""
        return set(self.active_connections.keys())

    def get_connection_count(self, user_id: int) -> int:
        """Get number of active connections for a user."""
        return len(self.active_connections.get(user_id, set()))


# Global instance
manager = ConnectionManager()
