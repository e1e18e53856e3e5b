"""
Push token registration.
"""
import logging
import uuid

from sqlalchemy.orm import Session

from app.core.database import run_transaction
from app.core.exceptions import NotFound
from app.crud import device_crud, user_crud
from app.model.device import Device
from app.schema.device import DeviceRegisterBody
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


def generate_device_id() -> str:
    return uuid.uuid4().hex


class DeviceService:
    def __init__(self, db: Session):
        self.db = db

    def register_token(self, user_id: str, body: DeviceRegisterBody) -> Device:
        """Create or refresh the caller's device row. Keeps a previously stored app_version."""
        if not user_crud.get(self.db, user_id):
            raise NotFound("User")
        device_id = body.device_id or generate_device_id()
        logger.info(f"Refreshing FCM token: user={user_id} device={device_id} platform={body.platform.value}")

        device = run_transaction(
            self.db,
            lambda db: device_crud.upsert_token(
                db,
                user_id=user_id,
                device_id=device_id,
                token=body.token,
                platform=body.platform.value,
                app_version=body.app_version,
                now=utc_now(),
            ),
        )
        logger.info(f"FCM token updated: user={user_id} device={device_id}")
        return device
