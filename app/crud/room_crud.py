"""
Room CRUD.
"""
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc

from app.model.room import Room
from app.model.room_member import UserRoomMembership
from app.crud.base import CRUDBase


class CRUDRoom(CRUDBase[Room, Dict[str, Any], Dict[str, Any]]):
    def get_for_update(self, db: Session, room_id: str) -> Optional[Room]:
        """Load and row-lock a room so member_count changes serialize."""
        return db.query(self.model).filter(self.model.id == room_id).with_for_update().first()

    def list_rooms_for_user(self, db: Session, *, user_id: str) -> List[Room]:
        """Rooms the user belongs to (via the user-side mirror), most recently active first."""
        subq = db.query(UserRoomMembership.room_id).filter(UserRoomMembership.user_id == user_id)
        return (
            db.query(self.model)
            .filter(self.model.id.in_(subq))
            .order_by(desc(self.model.updated_at), desc(self.model.created_at))
            .all()
        )


room_crud = CRUDRoom(Room)
