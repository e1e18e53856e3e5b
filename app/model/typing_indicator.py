"""
Typing indicator. Ephemeral; removed on stop or by the staleness sweep.
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint
import uuid
from app.core.database import Base
from app.utils.time_utils import utc_now


class TypingIndicator(Base):
    __tablename__ = "typing_indicators"
    __table_args__ = (UniqueConstraint("room_id", "user_id", name="uq_typing_indicators_room_user"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(128), nullable=False)
    is_typing = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
