"""
Notification pipeline schemas: message snapshots, events and run summaries.
"""
import enum
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class MessageSnapshot(BaseModel):
    """The fields of a message needed to notify a room, frozen at write time."""
    text: str
    sender_id: str
    timestamp: Optional[datetime] = None


class DispatchOutcome(BaseModel):
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    removed_tokens: int = 0


class MessageCreatedEvent(BaseModel):
    """Delivered once per message write; event_id is unique per delivery source event."""
    event_id: str = Field(..., min_length=1)
    room_id: str
    message_id: str
    message: MessageSnapshot


class MessageEventStatus(str, enum.Enum):
    ALREADY_PROCESSED = "already_processed"
    NOTIFIED = "notified"
    QUEUED_FOR_RETRY = "queued_for_retry"


class RetryRunSummary(BaseModel):
    total: int = 0
    successful: int = 0
    failed: int = 0
    dead_lettered: int = 0


class CleanupSummary(BaseModel):
    devices: int = 0
    processed_events: int = 0
    typing_indicators: int = 0
    rate_limits: int = 0
    processed_webhooks: int = 0
    failed_sweeps: List[str] = Field(default_factory=list)


class RateLimitResult(BaseModel):
    allowed: bool
    remaining: int
    reset_at: datetime
