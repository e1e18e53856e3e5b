"""
Message CRUD.
"""
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import desc, func

from app.model.message import Message
from app.crud.base import CRUDBase


class CRUDMessage(CRUDBase[Message, Dict[str, Any], Dict[str, Any]]):
    def list_by_room_paginated(
        self,
        db: Session,
        *,
        room_id: str,
        page: int = 1,
        limit: int = 50,
        before_id: Optional[str] = None,
    ) -> Tuple[List[Message], int]:
        """List visible messages in a room, newest first. Optional before_id for cursor pagination."""
        base = db.query(self.model).filter(
            self.model.room_id == room_id,
            self.model.deleted.is_(False),
            self.model.visible.is_(True),
        )
        if before_id:
            msg = self.get(db, before_id)
            if msg and msg.room_id == room_id:
                base = base.filter(self.model.timestamp < msg.timestamp)
        total = base.with_entities(func.count(self.model.id)).scalar() or 0
        skip = (page - 1) * limit if not before_id else 0
        items = (
            base.order_by(desc(self.model.timestamp))
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total


message_crud = CRUDMessage(Message)
