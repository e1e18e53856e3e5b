from .session_layer import (
    init_redis,
    get_session,
    revoke_user_sessions,
    extract_token,
)

__all__ = [
    "init_redis",
    "get_session",
    "revoke_user_sessions",
    "extract_token",
]
