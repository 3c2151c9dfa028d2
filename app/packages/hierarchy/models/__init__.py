"""模型包初始化，便于统一导入 ORM 实体并触发模型注册。"""

from app.packages.hierarchy.models.department import Department
from app.packages.hierarchy.models.employee import Employee

__all__ = [
    "Department",
    "Employee",
]
