"""
Notification retry queue CRUD.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from app.model.notification_retry import NotificationRetry, DeadLetter
from app.crud.base import CRUDBase


class CRUDNotificationRetry(CRUDBase[NotificationRetry, Dict[str, Any], Dict[str, Any]]):
    def enqueue(
        self,
        db: Session,
        *,
        room_id: str,
        message_id: str,
        message: Dict[str, Any],
        error: str,
        now: datetime,
    ) -> NotificationRetry:
        return self.create_from_dict(
            db,
            obj_in={
                "room_id": room_id,
                "message_id": message_id,
                "message": message,
                "error": error,
                "retry_count": 0,
                "created_at": now,
            },
        )

    def list_oldest(self, db: Session, *, limit: int) -> List[NotificationRetry]:
        return (
            db.query(self.model)
            .order_by(self.model.created_at.asc())
            .limit(limit)
            .all()
        )

    def copy_to_dead_letter(
        self, db: Session, *, retry: NotificationRetry, reason: str, now: datetime
    ) -> DeadLetter:
        """Stage a dead-letter copy of retry. No commit."""
        dead = DeadLetter(
            retry_id=retry.id,
            room_id=retry.room_id,
            message_id=retry.message_id,
            message=dict(retry.message or {}),
            error=retry.error,
            retry_count=retry.retry_count,
            last_error=retry.last_error,
            last_retry_at=retry.last_retry_at,
            created_at=retry.created_at,
            reason=reason,
            moved_at=now,
        )
        db.add(dead)
        return dead

    def record_failure(
        self, db: Session, *, retry: NotificationRetry, error: str, now: datetime
    ) -> NotificationRetry:
        return self.update(
            db,
            db_obj=retry,
            obj_in={
                "retry_count": (retry.retry_count or 0) + 1,
                "last_error": error,
                "last_retry_at": now,
            },
        )

    def get_dead_letter_by_retry(self, db: Session, retry_id: str) -> Optional[DeadLetter]:
        return db.query(DeadLetter).filter(DeadLetter.retry_id == retry_id).first()


notification_retry_crud = CRUDNotificationRetry(NotificationRetry)
