"""
API exceptions. Each carries a machine-readable code and a message in detail.
"""
from datetime import datetime
from typing import Dict, Optional

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base for all application errors surfaced to callers."""

    status_code_default: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL"
    message: str = "Internal error"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.message
        super().__init__(
            status_code=self.status_code_default,
            detail={"code": self.code, "message": self.message},
            headers=headers,
        )


class NotAuthenticated(AppException):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"
    message = "Must be logged in"


class SessionExpired(AppException):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    code = "SESSION_EXPIRED"
    message = "Session expired or not found. Please log in again."


class InvalidArgument(AppException):
    status_code_default = status.HTTP_400_BAD_REQUEST
    code = "INVALID_ARGUMENT"
    message = "Invalid argument"


class PermissionDenied(AppException):
    status_code_default = status.HTTP_403_FORBIDDEN
    code = "PERMISSION_DENIED"
    message = "Permission denied"


class NotFound(AppException):
    status_code_default = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource"):
        self.resource = resource
        super().__init__(message=f"{resource} not found")


class RoomNotFound(NotFound):
    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(resource=f"Room {room_id}")


class RateLimited(AppException):
    status_code_default = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"

    def __init__(self, reset_at: datetime):
        self.reset_at = reset_at
        retry_after = max(0, int((reset_at - datetime.now(reset_at.tzinfo)).total_seconds()) + 1)
        super().__init__(
            message=f"Rate limit exceeded. Try again after {reset_at.isoformat()}",
            headers={"Retry-After": str(retry_after)},
        )


class Internal(AppException):
    pass


class UnknownAction(Internal):
    code = "UNKNOWN_ACTION"

    def __init__(self, action: str):
        self.action = action
        super().__init__(message=f"Unknown rate limit action: {action}")


class AlreadyProcessed(Exception):
    """Idempotency marker already present. Not an error for callers."""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"Event {event_id} already processed")
