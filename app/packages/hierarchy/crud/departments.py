"""部门 CRUD：层级引擎依赖的全部持久化查询。

子树与后代查询只依赖 `path` 前缀（一次范围查询），不依赖数据库的递归查询能力。
"""

from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.packages.hierarchy.crud.base import CRUDBase
from app.packages.hierarchy.models.department import Department
from app.packages.hierarchy.utils.path_utils import descendant_prefix


class CRUDDepartment(CRUDBase[Department]):
    """提供部门实体的便捷查询方法。"""

    def _ordered(self, query):
        # 同级排序：sort_order -> id
        return query.order_by(Department.sort_order.asc(), Department.id.asc())

    def get_by_code(self, db: Session, code: str) -> Optional[Department]:
        return self.query(db).filter(Department.code == code).first()

    def exists_by_code(self, db: Session, code: str, *, exclude_id: Optional[int] = None) -> bool:
        query = self.query(db).with_entities(Department.id).filter(Department.code == code)
        if exclude_id is not None:
            query = query.filter(Department.id != exclude_id)
        return query.first() is not None

    def get_by_name_in_parent(
        self,
        db: Session,
        name: str,
        parent_id: Optional[int],
        *,
        exclude_id: Optional[int] = None,
    ) -> Optional[Department]:
        """按名称在同一父节点下检索部门（``parent_id`` 为空表示根节点之间）。"""
        query = self.query(db).filter(Department.name == name)
        if parent_id is None:
            query = query.filter(Department.parent_id.is_(None))
        else:
            query = query.filter(Department.parent_id == parent_id)
        if exclude_id is not None:
            query = query.filter(Department.id != exclude_id)
        return query.first()

    def list_all(self, db: Session) -> List[Department]:
        return self._ordered(self.query(db)).all()

    def list_roots(self, db: Session) -> List[Department]:
        return self._ordered(self.query(db).filter(Department.parent_id.is_(None))).all()

    def list_children(self, db: Session, parent_id: int) -> List[Department]:
        return self._ordered(self.query(db).filter(Department.parent_id == parent_id)).all()

    def exists_children(self, db: Session, parent_id: int, *, exclude_id: Optional[int] = None) -> bool:
        query = self.query(db).with_entities(Department.id).filter(Department.parent_id == parent_id)
        if exclude_id is not None:
            query = query.filter(Department.id != exclude_id)
        return query.first() is not None

    def count_children(self, db: Session, parent_id: int) -> int:
        return self.query(db).filter(Department.parent_id == parent_id).count()

    def list_by_path_prefix(
        self,
        db: Session,
        path: str,
        *,
        include_self: bool = True,
        for_update: bool = False,
    ) -> List[Department]:
        """返回 ``path`` 对应的整棵子树（按路径排序），可选择是否包含自身并加行锁。"""
        # autoescape：编码里的 `_` / `%` 不能被当作 LIKE 通配符
        prefix_filter = Department.path.startswith(descendant_prefix(path), autoescape=True)
        if include_self:
            prefix_filter = or_(Department.path == path, prefix_filter)
        query = self.query(db).filter(prefix_filter).order_by(Department.path.asc(), Department.id.asc())
        if for_update:
            query = query.with_for_update()
        return query.all()

    def list_by_level(self, db: Session, level: int) -> List[Department]:
        return self._ordered(self.query(db).filter(Department.level == level)).all()

    def search_by_name(self, db: Session, keyword: str) -> List[Department]:
        """名称模糊搜索（忽略大小写），按名称排序。"""
        pattern = f"%{keyword.strip().lower()}%"
        return (
            self.query(db)
            .filter(func.lower(Department.name).like(pattern))
            .order_by(Department.name.asc(), Department.id.asc())
            .all()
        )


department_crud = CRUDDepartment(Department)
