"""
Redis Pub/Sub service for real-time notifications.
Request handlers publish ``{user_id, event, data}`` after their transaction
commits; the listener running inside the API process forwards each message
to the WebSocket sessions of that user. Delivery is fire-and-forget.
"""

import asyncio
import json
import logging
from typing import Optional

import redis
import redis.asyncio as aioredis
from redis.asyncio.client import PubSub

from resonant.core.config import settings
from resonant.services.websocket_manager import manager

logger = logging.getLogger(__name__)

CHANNEL = "notifications"

_publisher: Optional[redis.Redis] = None


def _get_publisher() -> redis.Redis:
    global _publisher
    if _publisher is None:
        _publisher = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _publisher


def publish_event(user_id: int, event: str, data: dict | None = None) -> bool:
    """Publish an event for a user. Failures are logged and reported as False."""
    if not settings.REALTIME_ENABLED:
        return False
    message = {"user_id": user_id, "event": event, "data": data or {}}
    try:
        _get_publisher().publish(CHANNEL, json.dumps(message))
        logger.debug(f"Published {event} to Redis for user {user_id}")
        return True
    except Exception as e:
        logger.error(f"Error publishing {event} for user {user_id}: {e}")
        return False


class RedisPubSubService:
    """Redis Pub/Sub listener feeding the WebSocket manager."""

    def __init__(self):
        self.redis: Optional[aioredis.Redis] = None
        self.pubsub: Optional[PubSub] = None
        self._listener_task: Optional[asyncio.Task] = None

    async def connect(self):
        """Connect to Redis and subscribe to notifications channel."""
        try:
            self.redis = aioredis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
            )
            self.pubsub = self.redis.pubsub()
            await self.pubsub.subscribe(CHANNEL)

            logger.info(f"Redis Pub/Sub connected and subscribed to '{CHANNEL}' channel")

            self._listener_task = asyncio.create_task(self._listen())

        except Exception as e:
            logger.error(f"Failed to connect to Redis Pub/Sub: {e}")
            raise

    async def disconnect(self):
        """Disconnect from Redis Pub/Sub."""
        if self._listener_task:
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass

        if self.pubsub:
            await self.pubsub.unsubscribe(CHANNEL)
            await self.pubsub.aclose()

        if self.redis:
            await self.redis.aclose()

        logger.info("Redis Pub/Sub disconnected")

    async def handle_message(self, raw: str):
        payload = json.loads(raw)
        user_id = int(payload["user_id"])
        await manager.dispatch(user_id, payload["event"], payload.get("data"))
        logger.info(f"Event {payload['event']} forwarded to user {user_id} via WebSocket")

    async def _listen(self):
        """Listen to Redis Pub/Sub messages and forward them to WebSocket clients."""
        logger.info("Starting Redis Pub/Sub listener...")

        try:
            async for message in self.pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    await self.handle_message(message["data"])
                except Exception as e:
                    logger.error(f"Error processing Redis message: {e}", exc_info=True)

        except asyncio.CancelledError:
            logger.info("Redis Pub/Sub listener cancelled")
        except Exception as e:
            logger.error(f"Redis Pub/Sub listener error: {e}", exc_info=True)


# Global instance
redis_pubsub = RedisPubSubService()
