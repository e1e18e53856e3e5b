"""
Device model. One push token per (user, device).
"""
import enum

from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
import uuid
from app.core.database import Base
from app.utils.time_utils import utc_now


class Platform(str, enum.Enum):
    IOS = "ios"
    ANDROID = "android"
    UNKNOWN = "unknown"


class Device(Base):
    __tablename__ = "devices"
    __table_args__ = (UniqueConstraint("user_id", "device_id", name="uq_devices_user_device"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    device_id = Column(String(64), nullable=False)
    fcm_token = Column(String, nullable=False)
    platform = Column(String(16), nullable=False, default=Platform.UNKNOWN.value)
    app_version = Column(String(32), nullable=True)
    last_active = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
