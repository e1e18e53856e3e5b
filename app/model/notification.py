"""
In-app notification shown in the user's notification list.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, JSON
import uuid
from app.core.database import Base
from app.utils.time_utils import utc_now

# new_message | billing_issue | subscription_expired | user_report | system
TYPE_SYSTEM = "system"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False, index=True)
    type = Column(String(32), nullable=False, default=TYPE_SYSTEM)
    title = Column(String, nullable=True)
    body = Column(Text, nullable=True)
    data = Column(JSON, nullable=False, default=dict)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
