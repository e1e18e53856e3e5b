"""
User CRUD operations.
"""
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session
from app.model.user import User
from app.crud.base import CRUDBase


class CRUDUser(CRUDBase[User, Dict[str, Any], Dict[str, Any]]):
    """User-specific CRUD operations."""

    def get_for_update(self, db: Session, user_id: str) -> Optional[User]:
        """Load and row-lock a user inside the caller's transaction."""
        return db.query(self.model).filter(self.model.id == user_id).with_for_update().first()


user_crud = CRUDUser(User)
