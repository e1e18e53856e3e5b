"""
Session Middleware - resolves the caller's session from Redis for each request.
"""
import logging
from typing import Callable

from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.session import extract_token, get_session

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseHTTPMiddleware):
    """Attaches token and session (possibly empty) to request.state."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.session = {}
        request.state.token = extract_token(request.headers.get("authorization"))

        if request.state.token:
            try:
                user_data = get_session(request.state.token)
            except (RedisError, RuntimeError) as e:
                # Unreachable session store: treat the caller as unauthenticated
                logger.error(f"Session lookup failed: {e}")
                user_data = None
            if user_data:
                request.state.session = user_data

        return await call_next(request)
