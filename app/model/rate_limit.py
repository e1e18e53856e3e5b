"""
Sliding-window rate limit state, one row per (user, action).
"""
from sqlalchemy import Column, String, DateTime, JSON
from app.core.database import Base
from app.utils.time_utils import utc_now


class RateLimitRecord(Base):
    __tablename__ = "rate_limits"

    id = Column(String(200), primary_key=True)  # "<user_id>_<action>"
    user_id = Column(String(128), nullable=False, index=True)
    action = Column(String(64), nullable=False)
    timestamps = Column(JSON, nullable=False, default=list)  # epoch ms, inside the window
    last_updated = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
