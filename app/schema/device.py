"""
Device registration schemas.
"""
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from app.model.device import Platform


class DeviceRegisterBody(BaseModel):
    """Body for POST /devices. A device id is generated when none is given."""
    token: str = Field(..., min_length=1, max_length=4096)
    device_id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    platform: Platform = Platform.UNKNOWN
    app_version: Optional[str] = Field(default=None, max_length=32)

    @field_validator("token")
    @classmethod
    def token_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("token must not be blank")
        return v.strip()


class DeviceRegisterResponse(BaseModel):
    success: bool = True
    device_id: str
