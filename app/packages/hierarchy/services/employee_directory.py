"""员工目录：层级引擎读取部门人数的唯一入口。"""

from __future__ import annotations

from typing import Dict, Iterable

from sqlalchemy.orm import Session

from app.packages.hierarchy.crud.employees import employee_crud


class EmployeeDirectory:
    """默认实现基于本库的 `employees` 表；接入外部人事系统时替换本类即可。"""

    def count_employees_in_department(self, db: Session, department_id: int) -> int:
        return employee_crud.count_by_department(db, department_id)

    def count_employees_in_departments(self, db: Session, department_ids: Iterable[int]) -> Dict[int, int]:
        return employee_crud.count_by_departments(db, department_ids)


employee_directory = EmployeeDirectory()
