# app/core/limiter.py

import logging
from typing import Optional

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings
from app.schemas.user import SessionUser

logger = logging.getLogger(__name__)

# --- Key function ---

def key_func(request: Request) -> str:
    """
    How a request is identified for rate limiting.
    User id when authenticated, otherwise the client IP.
    """
    session: Optional[SessionUser] = getattr(request.state, "session_user", None)
    if session and session.id:
        return f"user:{session.id}"
    return get_remote_address(request)

# --- Limiter ---

# Redis keeps counters shared across workers; tests run with the limiter disabled
limiter = Limiter(
    key_func=key_func,
    storage_uri=settings.REDIS_URL if settings.RATE_LIMIT_ENABLED else "memory://",
    strategy="moving-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)

AUTH_RATE_LIMIT = "10/minute"
MAGIC_LINK_RATE_LIMIT = "20/minute"
