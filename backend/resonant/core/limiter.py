"""Rate limiting configuration."""

from __future__ import annotations

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address

from resonant.core.config import settings

logger = logging.getLogger(__name__)

# In-process storage; limits are per API worker
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=settings.RATE_LIMIT_ENABLED,
)
logger.info(f"Rate limiter enabled={settings.RATE_LIMIT_ENABLED}, friend requests: {settings.FRIEND_REQUEST_RATE_LIMIT}")
