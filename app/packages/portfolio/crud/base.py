"""CRUD 基类：按主键读写单个实体的通用方法。"""

from typing import Any, Dict, Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Query, Session

from app.packages.portfolio.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """只负责读写，不做业务校验：目标不存在时返回 ``None``/``False``，由服务层决定如何反馈。

    所有写方法都接受 ``auto_commit``；为 ``False`` 时只 flush，便于调用方把多次写入
    放进同一个事务。
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def query(self, db: Session) -> Query:
        return db.query(self.model)

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return self.query(db).filter(self.model.id == id).first()

    def _persist(self, db: Session, db_obj: ModelType, auto_commit: bool) -> ModelType:
        db.add(db_obj)
        if not auto_commit:
            db.flush()
            return db_obj
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def create(self, db: Session, obj_in: Dict[str, Any], *, auto_commit: bool = True) -> ModelType:
        return self._persist(db, self.model(**obj_in), auto_commit)

    def update_fields(
        self,
        db: Session,
        id: Any,
        fields: Dict[str, Any],
        *,
        auto_commit: bool = True,
    ) -> Optional[ModelType]:
        db_obj = self.get(db, id)
        if db_obj is None:
            return None
        for key, value in fields.items():
            setattr(db_obj, key, value)
        return self._persist(db, db_obj, auto_commit)

    def hard_delete(self, db: Session, id: Any, *, auto_commit: bool = True) -> bool:
        """物理删除；返回是否确有记录被删除。"""
        affected = self.query(db).filter(self.model.id == id).delete()
        if auto_commit:
            try:
                db.commit()
            except Exception:
                db.rollback()
                raise
        return affected > 0
