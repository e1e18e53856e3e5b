"""
Inbound hook payloads: RevenueCat billing events and identity provider account events.
"""
import enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class RevenueCatEvent(BaseModel):
    """The `event` object of a RevenueCat webhook. Unknown fields are kept."""
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    app_user_id: Optional[str] = None
    product_id: Optional[str] = None


class WebhookStatus(str, enum.Enum):
    OK = "ok"
    ALREADY_PROCESSED = "already_processed"
    IGNORED = "ignored"


class WebhookResponse(BaseModel):
    status: WebhookStatus


class AuthEventType(str, enum.Enum):
    ACCOUNT_CREATED = "account.created"
    ACCOUNT_DELETED = "account.deleted"


class AuthEventUser(BaseModel):
    uid: str = Field(..., min_length=1, max_length=128)
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


class AuthEvent(BaseModel):
    """Body for POST /events/auth."""
    event_id: str = Field(..., min_length=1, max_length=128)
    type: AuthEventType
    user: AuthEventUser
