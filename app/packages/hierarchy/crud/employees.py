"""员工 CRUD：只提供按部门统计在职人数的查询。"""

from typing import Dict, Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.packages.hierarchy.crud.base import CRUDBase
from app.packages.hierarchy.models.employee import Employee


class CRUDEmployee(CRUDBase[Employee]):
    def _active(self, db: Session):
        return self.query(db).filter(Employee.is_active.is_(True))

    def count_by_department(self, db: Session, department_id: int) -> int:
        return self._active(db).filter(Employee.department_id == department_id).count()

    def count_by_departments(self, db: Session, department_ids: Iterable[int]) -> Dict[int, int]:
        """一次分组查询返回多个部门的在职人数，缺失的部门计为 0。"""
        ids = {int(i) for i in department_ids if i is not None}
        if not ids:
            return {}
        rows = (
            self._active(db)
            .with_entities(Employee.department_id, func.count(Employee.id))
            .filter(Employee.department_id.in_(ids))
            .group_by(Employee.department_id)
            .all()
        )
        counts = {department_id: 0 for department_id in ids}
        counts.update({department_id: int(total) for department_id, total in rows})
        return counts


employee_crud = CRUDEmployee(Employee)
