"""
Room model. member_count is a denormalized counter kept in step with room_members.
"""
from sqlalchemy import Column, String, Text, Integer, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
from app.core.database import Base


class Room(Base):
    __tablename__ = "rooms"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False, default="")
    photo_url = Column(String, nullable=True)
    member_count = Column(Integer, nullable=False, default=0)

    # Last message summary, written by the message-created handler
    last_message_text = Column(Text, nullable=True)
    last_message_sender_id = Column(String(128), nullable=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    members = relationship("RoomMember", back_populates="room", cascade="all, delete-orphan")
