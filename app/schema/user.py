"""
User profile and notification preference schemas.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from app.utils.time_utils import parse_hhmm


class NotificationPreferences(BaseModel):
    """Embedded on the user row. Quiet hours are "HH:MM" in UTC."""
    enabled: bool = True
    quiet_hours_start: Optional[str] = None
    quiet_hours_end: Optional[str] = None


class NotificationPreferencesUpdate(BaseModel):
    """Body for PATCH /users/me/notification-preferences."""
    enabled: Optional[bool] = None
    quiet_hours_start: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    quiet_hours_end: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    clear_quiet_hours: bool = False

    @model_validator(mode="after")
    def check_quiet_hours(self):
        if self.clear_quiet_hours:
            return self
        if (self.quiet_hours_start is None) != (self.quiet_hours_end is None):
            raise ValueError("quiet_hours_start and quiet_hours_end must be set together")
        for value in (self.quiet_hours_start, self.quiet_hours_end):
            if value is not None:
                parse_hhmm(value)
        return self


class UserProfile(BaseModel):
    id: str
    email: str
    display_name: str
    photo_url: Optional[str] = None
    subscription_status: str
    subscription_plan: Optional[str] = None
    notification_preferences: NotificationPreferences
    last_seen: Optional[datetime] = None
    created_at: Optional[datetime] = None
