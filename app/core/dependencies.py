"""
FastAPI dependencies for route protection.
"""
from fastapi import Request, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.core.exceptions import NotAuthenticated, SessionExpired
from typing import Any, Dict, Optional

# Security scheme for OpenAPI docs (shows lock icon and Authorization header)
bearer_scheme = HTTPBearer(
    scheme_name="Bearer",
    description="Session token issued by the identity provider",
    auto_error=False,
)


async def validate_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Dict[str, Any]:
    """
    Validates session loaded by middleware.

    Returns:
        Session data dict; always contains user_id

    Raises:
        NotAuthenticated: No token provided
        SessionExpired: Token not found in Redis
    """
    if not getattr(request.state, "token", None):
        raise NotAuthenticated()

    session = getattr(request.state, "session", None)
    if not session or not session.get("user_id"):
        raise SessionExpired()

    return session


def current_user_id(current_user: Dict[str, Any] = Depends(validate_session)) -> str:
    """Caller's uid from the validated session."""
    return str(current_user["user_id"])
