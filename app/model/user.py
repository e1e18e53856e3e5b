"""
User model. Profile, subscription state and embedded notification preferences.
"""
import enum

from sqlalchemy import Column, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from app.core.database import Base


class SubscriptionStatus(str, enum.Enum):
    FREE = "free"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    BILLING_ISSUE = "billing_issue"


class User(Base):
    __tablename__ = "users"

    id = Column(String(128), primary_key=True)  # Identity provider uid
    email = Column(String, nullable=False, default="")
    display_name = Column(String, nullable=False, default="")
    photo_url = Column(String, nullable=True)

    subscription_status = Column(
        Enum(SubscriptionStatus, name="subscription_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=SubscriptionStatus.FREE,
    )
    subscription_plan = Column(String, nullable=True)
    subscription_started_at = Column(DateTime(timezone=True), nullable=True)
    subscription_updated_at = Column(DateTime(timezone=True), nullable=True)
    subscription_cancelled_at = Column(DateTime(timezone=True), nullable=True)
    subscription_expired_at = Column(DateTime(timezone=True), nullable=True)

    # Notification preferences ("HH:MM" quiet hours, both or neither)
    notifications_enabled = Column(Boolean, nullable=False, default=True)
    quiet_hours_start = Column(String(5), nullable=True)
    quiet_hours_end = Column(String(5), nullable=True)

    suspended = Column(Boolean, nullable=False, default=False)
    suspended_at = Column(DateTime(timezone=True), nullable=True)
    suspend_reason = Column(String, nullable=True)

    last_seen = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
