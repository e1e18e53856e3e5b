"""
Message model plus per-user read receipts.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.sql import func
import uuid
from app.core.database import Base


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String(128), nullable=False, index=True)
    text = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Moderation / edit metadata
    deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(String(128), nullable=True)
    edited_at = Column(DateTime(timezone=True), nullable=True)
    flagged = Column(Boolean, nullable=False, default=False)
    visible = Column(Boolean, nullable=False, default=True)

    # reaction -> list of user ids
    reactions = Column(JSON, nullable=False, default=dict)


class ReadReceipt(Base):
    __tablename__ = "read_receipts"
    __table_args__ = (UniqueConstraint("message_id", "user_id", name="uq_read_receipts_message_user"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    message_id = Column(String(36), ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False)
