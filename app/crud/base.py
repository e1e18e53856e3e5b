"""
Generic CRUD base shared by all model-specific CRUD singletons.
"""
import logging
from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from app.core.database import Base, MAX_BATCH_SIZE

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType")
UpdateSchemaType = TypeVar("UpdateSchemaType")


def chunked(items: List[Any], size: int = MAX_BATCH_SIZE) -> Iterable[List[Any]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    def __init__(self, model: Type[ModelType]):
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return db.get(self.model, id)

    def create_from_dict(self, db: Session, *, obj_in: Dict[str, Any], commit: bool = True) -> ModelType:
        db_obj = self.model(**obj_in)
        db.add(db_obj)
        if commit:
            db.commit()
            db.refresh(db_obj)
        else:
            db.flush()
        return db_obj

    def update(self, db: Session, *, db_obj: ModelType, obj_in: Dict[str, Any], commit: bool = True) -> ModelType:
        for field, value in obj_in.items():
            setattr(db_obj, field, value)
        db.add(db_obj)
        if commit:
            db.commit()
            db.refresh(db_obj)
        return db_obj

    def delete_many(self, db: Session, ids: List[Any], batch_size: int = MAX_BATCH_SIZE) -> int:
        """
        Delete rows by primary key in chunks, committing each chunk.

        A failure leaves earlier chunks deleted; callers re-select on the next run.
        """
        deleted = 0
        for chunk in chunked(list(ids), batch_size):
            deleted += (
                db.query(self.model)
                .filter(self.model.id.in_(chunk))
                .delete(synchronize_session=False)
            )
            db.commit()
        return deleted
