from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    PROJECT_NAME: str = "Resonant Notifications API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "local"
    DATABASE_URL: str = "sqlite:///../resonant.db"
    SECRET_KEY: str = "changeme"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    JWT_ALGORITHM: str = "HS256"
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Redis configuration
    REDIS_URL: str = "redis://localhost:6379/0"
    REALTIME_ENABLED: bool = True
    NOTIFICATION_REFRESH_DEBOUNCE_SECONDS: float = 0.3

    # Celery configuration
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"
    RECONCILIATION_INTERVAL_MINUTES: int = 60

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    FRIEND_REQUEST_RATE_LIMIT: str = "30/minute"

    # Email (SMTP)
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    EMAIL_FROM: str = ""
    CLIENT_URL: str = "http://localhost:5173"

    # Business windows
    REJECTED_FRIENDSHIP_RETENTION_HOURS: int = 24
    PROFILE_RESTORATION_DAYS: int = 30

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: List[str] | str) -> List[str]:
        """Allow both comma-separated strings and list inputs."""
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("SMTP_USER", "SMTP_PASSWORD", "EMAIL_FROM", mode="after")
    @classmethod
    def strip_smtp(cls, value: str) -> str:
        return (value or "").strip()


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
