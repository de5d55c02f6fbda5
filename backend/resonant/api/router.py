from fastapi import APIRouter

from resonant.api.v1 import friendships, health, notifications, websocket


api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(friendships.router, prefix="", tags=["friendships"])
api_router.include_router(websocket.router, prefix="/ws", tags=["websocket"])
