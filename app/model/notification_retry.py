"""
Durable retry queue for failed room notifications, and its dead-letter table.
"""
from sqlalchemy import Column, String, Text, Integer, DateTime, JSON
import uuid
from app.core.database import Base
from app.utils.time_utils import utc_now


class NotificationRetry(Base):
    __tablename__ = "notification_retries"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_id = Column(String(36), nullable=False)
    message_id = Column(String(36), nullable=False)
    message = Column(JSON, nullable=False)  # {text, sender_id, timestamp}
    error = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    last_retry_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)


class DeadLetter(Base):
    """Write-once copy of an exhausted retry, kept for offline inspection."""
    __tablename__ = "dead_letters"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    retry_id = Column(String(36), nullable=False, index=True)
    room_id = Column(String(36), nullable=False)
    message_id = Column(String(36), nullable=False)
    message = Column(JSON, nullable=False)
    error = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False)
    last_error = Column(Text, nullable=True)
    last_retry_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=True)
    reason = Column(String, nullable=False)
    moved_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
