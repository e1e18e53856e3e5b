"""
Device router - push token registration (protected).
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import current_user_id
from app.schema.device import DeviceRegisterBody, DeviceRegisterResponse
from app.service.device_service import DeviceService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=DeviceRegisterResponse)
async def register_device(
    body: DeviceRegisterBody,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """Register or refresh an FCM token for the caller's device."""
    device = DeviceService(db).register_token(user_id, body)
    return DeviceRegisterResponse(device_id=device.device_id)
