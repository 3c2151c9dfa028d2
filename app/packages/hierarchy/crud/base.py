"""CRUD 基类：为各实体提供通用的数据访问方法。"""

from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from sqlalchemy.orm import Query, Session

from app.packages.hierarchy.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """封装常见的查询、创建与保存逻辑，减少重复代码。

    所有写方法都支持 ``auto_commit=False``，以便由上层在同一事务中组合多次写入。
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def query(self, db: Session) -> Query:
        return db.query(self.model)

    def get(self, db: Session, id: Any, *, for_update: bool = False) -> Optional[ModelType]:
        query = self.query(db).filter(self.model.id == id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def exists(self, db: Session, id: Any) -> bool:
        return self.query(db).with_entities(self.model.id).filter(self.model.id == id).first() is not None

    def create(self, db: Session, obj_in: Dict[str, Any], *, auto_commit: bool = True) -> ModelType:
        db_obj = self.model(**obj_in)
        db.add(db_obj)
        if auto_commit:
            db.commit()
            db.refresh(db_obj)
        else:
            db.flush()
        return db_obj

    def save(self, db: Session, db_obj: ModelType, *, auto_commit: bool = True) -> ModelType:
        db.add(db_obj)
        if auto_commit:
            db.commit()
            db.refresh(db_obj)
        return db_obj

    def save_all(self, db: Session, db_objs: Iterable[ModelType], *, auto_commit: bool = True) -> List[ModelType]:
        """批量保存；``auto_commit=True`` 时在一次提交中完成，失败则整体回滚。"""
        items = list(db_objs)
        db.add_all(items)
        if auto_commit:
            try:
                db.commit()
            except Exception:
                db.rollback()
                raise
        else:
            db.flush()
        return items

    def hard_delete(self, db: Session, db_obj: ModelType, *, auto_commit: bool = True) -> None:
        """物理删除行。"""
        db.delete(db_obj)
        if auto_commit:
            try:
                db.commit()
            except Exception:
                db.rollback()
                raise
        else:
            db.flush()
