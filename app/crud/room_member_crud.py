"""
Room membership CRUD. Covers both mirrors; callers commit.
"""
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from app.model.room_member import RoomMember, UserRoomMembership
from app.crud.base import CRUDBase


class CRUDRoomMember(CRUDBase[RoomMember, Dict[str, Any], Dict[str, Any]]):
    def get_by_room_and_user(self, db: Session, *, room_id: str, user_id: str) -> Optional[RoomMember]:
        return (
            db.query(self.model)
            .filter(self.model.room_id == room_id, self.model.user_id == user_id)
            .first()
        )

    def get_mirror(self, db: Session, *, room_id: str, user_id: str) -> Optional[UserRoomMembership]:
        return (
            db.query(UserRoomMembership)
            .filter(UserRoomMembership.user_id == user_id, UserRoomMembership.room_id == room_id)
            .first()
        )

    def list_member_ids(self, db: Session, *, room_id: str) -> List[str]:
        rows = db.query(self.model.user_id).filter(self.model.room_id == room_id).all()
        return [r[0] for r in rows]

    def list_by_user(self, db: Session, *, user_id: str) -> List[RoomMember]:
        return db.query(self.model).filter(self.model.user_id == user_id).all()

    def add_pair(self, db: Session, *, room_id: str, user_id: str, role: str) -> RoomMember:
        """Stage both mirrors of one membership. No commit."""
        member = RoomMember(room_id=room_id, user_id=user_id, role=role)
        db.add(member)
        db.add(UserRoomMembership(user_id=user_id, room_id=room_id))
        db.flush()
        return member

    def remove_pair(self, db: Session, *, room_id: str, user_id: str) -> bool:
        """Stage deletion of both mirrors. Returns whether the room-side row existed."""
        removed = (
            db.query(self.model)
            .filter(self.model.room_id == room_id, self.model.user_id == user_id)
            .delete(synchronize_session=False)
        )
        db.query(UserRoomMembership).filter(
            UserRoomMembership.user_id == user_id,
            UserRoomMembership.room_id == room_id,
        ).delete(synchronize_session=False)
        return removed > 0


room_member_crud = CRUDRoomMember(RoomMember)
