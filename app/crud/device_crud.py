"""
Device (push token) CRUD.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from app.model.device import Device
from app.crud.base import CRUDBase


class CRUDDevice(CRUDBase[Device, Dict[str, Any], Dict[str, Any]]):
    def get_by_user_and_device(self, db: Session, *, user_id: str, device_id: str) -> Optional[Device]:
        return (
            db.query(self.model)
            .filter(self.model.user_id == user_id, self.model.device_id == device_id)
            .first()
        )

    def list_with_token_for_users(self, db: Session, *, user_ids: List[str]) -> List[Device]:
        if not user_ids:
            return []
        return (
            db.query(self.model)
            .filter(self.model.user_id.in_(user_ids), self.model.fcm_token != "")
            .order_by(self.model.user_id, self.model.device_id)
            .all()
        )

    def upsert_token(
        self,
        db: Session,
        *,
        user_id: str,
        device_id: str,
        token: str,
        platform: str,
        app_version: Optional[str],
        now: datetime,
    ) -> Device:
        """Merge-write a device's token. Existing app_version is kept when none is given."""
        device = self.get_by_user_and_device(db, user_id=user_id, device_id=device_id)
        if device is None:
            device = Device(user_id=user_id, device_id=device_id)
            db.add(device)
        device.fcm_token = token
        device.platform = platform
        device.last_active = now
        if app_version:
            device.app_version = app_version
        db.flush()
        return device


device_crud = CRUDDevice(Device)
