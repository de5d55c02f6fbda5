from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from resonant.core.config import settings
from resonant.db import engine
from resonant.services.websocket_manager import manager

router = APIRouter()


@router.get("/", summary="Health check", tags=["health"])
def read_health() -> dict[str, str]:
    """Return basic service health information."""
    return {"status": "ok", "service": settings.PROJECT_NAME}


@router.get("/ready", summary="Readiness check", tags=["health"])
def read_ready():
    """Readiness probe: the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "database": "disconnected",
                "error": str(e) if settings.ENVIRONMENT != "production" else "Database connection failed",
            },
        )
    return {
        "status": "ready",
        "database": "connected",
        "realtime": settings.REALTIME_ENABLED,
        "websocket_users": len(manager.get_active_users()),
    }
