"""部门模型：以“邻接表 + 物化路径”描述组织层级。"""

from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.packages.hierarchy.models.base import AuditMixin, Base, TimestampMixin


class Department(AuditMixin, TimestampMixin, Base):
    """部门实体，通过 `parent_id` 形成森林，`path` / `level` / `is_parent` 为派生字段。

    - `code` 全局唯一，是物化路径的组成片段，例如 `/COMP/IT`；
    - 名称仅在同一父节点下唯一；
    - 只保存 ID 引用，不建立父子对象关系，层级查询全部走 `parent_id` 与 `path` 索引；
    - `version` 为乐观锁版本号，并发改写同一行时由 ORM 检测冲突。
    """

    __tablename__ = "departments"
    __table_args__ = (
        UniqueConstraint("parent_id", "name", name="uq_departments_parent_name"),
        CheckConstraint("parent_id IS NULL OR parent_id <> id", name="no_self_parent"),
        CheckConstraint("level >= 0", name="level_non_negative"),
        CheckConstraint("sort_order >= 0", name="sort_order_non_negative"),
        Index("ix_departments_parent_sort", "parent_id", "sort_order"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # 删除父部门前必须先清空子部门
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("departments.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    path: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    is_parent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    manager_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Department id={self.id} code={self.code!r} path={self.path!r}>"
