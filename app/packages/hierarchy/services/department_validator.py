"""部门层级校验：在写入前判断创建 / 更新 / 移动 / 删除是否会破坏树的不变量。

所有校验都是只读的，返回 ``None`` 表示通过，否则返回 :class:`Violation`。
因此既可以在写事务内调用，也可以用于“能否删除”之类的预判查询。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.packages.hierarchy.core.enums import ViolationKind
from app.packages.hierarchy.core.exceptions import EXCEPTION_BY_KIND, HierarchyError
from app.packages.hierarchy.crud.departments import department_crud
from app.packages.hierarchy.models.department import Department
from app.packages.hierarchy.services.employee_directory import EmployeeDirectory, employee_directory
from app.packages.hierarchy.utils.path_utils import is_same_or_descendant


@dataclass(frozen=True)
class Violation:
    """一次被拒绝的层级变更。"""

    kind: ViolationKind
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_exception(self) -> HierarchyError:
        return EXCEPTION_BY_KIND[self.kind](self.message, data=self.data)


class DepartmentValidator:
    """部门层级不变量校验器。"""

    def __init__(self, employees: EmployeeDirectory = employee_directory) -> None:
        self.employees = employees

    def validate_create(
        self,
        db: Session,
        *,
        code: str,
        parent_id: Optional[int],
        name: Optional[str] = None,
    ) -> Optional[Violation]:
        if department_crud.exists_by_code(db, code):
            return Violation(ViolationKind.DUPLICATE_CODE, f"部门编码 {code} 已存在", {"code": code})
        if parent_id is not None and not department_crud.exists(db, parent_id):
            return Violation(ViolationKind.PARENT_NOT_FOUND, "上级部门不存在", {"parent_id": parent_id})
        if name is not None:
            return self._check_sibling_name(db, name, parent_id)
        return None

    def validate_update(
        self,
        db: Session,
        department: Department,
        *,
        name: Optional[str] = None,
        code: Optional[str] = None,
    ) -> Optional[Violation]:
        if name is not None and name != department.name:
            violation = self._check_sibling_name(db, name, department.parent_id, exclude_id=department.id)
            if violation is not None:
                return violation
        if code is not None and code != department.code:
            if department_crud.exists_by_code(db, code, exclude_id=department.id):
                return Violation(ViolationKind.DUPLICATE_CODE, f"部门编码 {code} 已存在", {"code": code})
        return None

    def validate_move(
        self,
        db: Session,
        department_id: int,
        new_parent_id: Optional[int],
    ) -> Optional[Violation]:
        department = department_crud.get(db, department_id)
        if department is None:
            return Violation(ViolationKind.NOT_FOUND, "部门不存在", {"department_id": department_id})

        if new_parent_id is not None:
            new_parent = department_crud.get(db, new_parent_id)
            if new_parent is None:
                return Violation(ViolationKind.PARENT_NOT_FOUND, "上级部门不存在", {"parent_id": new_parent_id})
            if new_parent.id == department.id:
                return Violation(
                    ViolationKind.SELF_PARENT,
                    "部门不能设置自身为上级部门",
                    {"department_id": department_id},
                )
            # 路径满足不变量，因此前缀判断即可精确识别“移动到自己的子孙下”
            if is_same_or_descendant(new_parent.path, department.path):
                return Violation(
                    ViolationKind.CIRCULAR_REFERENCE,
                    f"将部门 {department_id} 移动到 {new_parent_id} 下会形成循环引用",
                    {"department_id": department_id, "parent_id": new_parent_id},
                )

        if new_parent_id != department.parent_id:
            return self._check_sibling_name(db, department.name, new_parent_id, exclude_id=department.id)
        return None

    def validate_delete(self, db: Session, department_id: int) -> Optional[Violation]:
        if not department_crud.exists(db, department_id):
            return Violation(ViolationKind.NOT_FOUND, "部门不存在", {"department_id": department_id})
        if department_crud.exists_children(db, department_id):
            return Violation(
                ViolationKind.HAS_CHILDREN,
                f"部门 {department_id} 存在下级部门，无法删除",
                {"department_id": department_id},
            )
        employee_count = self.employees.count_employees_in_department(db, department_id)
        if employee_count:
            return Violation(
                ViolationKind.HAS_EMPLOYEES,
                f"部门 {department_id} 仍有 {employee_count} 名员工，无法删除",
                {"department_id": department_id, "employee_count": employee_count},
            )
        return None

    def _check_sibling_name(
        self,
        db: Session,
        name: str,
        parent_id: Optional[int],
        *,
        exclude_id: Optional[int] = None,
    ) -> Optional[Violation]:
        existing = department_crud.get_by_name_in_parent(db, name, parent_id, exclude_id=exclude_id)
        if existing is None:
            return None
        return Violation(
            ViolationKind.DUPLICATE_NAME,
            f"同级部门中已存在名称 {name}",
            {"name": name, "parent_id": parent_id},
        )


department_validator = DepartmentValidator()
