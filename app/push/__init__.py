"""
Push notification transport.
"""
from app.push.fcm import (
    FCMClient,
    PushTarget,
    SendResult,
    INVALID_TOKEN_ERRORS,
    init_firebase,
    get_push_client,
)

__all__ = [
    "FCMClient",
    "PushTarget",
    "SendResult",
    "INVALID_TOKEN_ERRORS",
    "init_firebase",
    "get_push_client",
]
