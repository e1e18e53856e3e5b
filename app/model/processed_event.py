"""
Idempotency markers. A row's existence means the event id was already handled.
"""
from sqlalchemy import Column, String, DateTime
from app.core.database import Base
from app.utils.time_utils import utc_now


class ProcessedEvent(Base):
    __tablename__ = "processed_events"

    id = Column(String(128), primary_key=True)  # Delivery-unique event id
    function_name = Column(String, nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)


class ProcessedWebhook(Base):
    __tablename__ = "processed_webhooks"

    id = Column(String(128), primary_key=True)  # Billing provider event id
    event_type = Column(String, nullable=False)
    user_id = Column(String(128), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
