"""部门相关的请求与响应模型定义。"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from app.packages.hierarchy.api.v1.schemas.common import ResponseEnvelope

_CODE_PATTERN = r"^[A-Za-z0-9_-]+$"


# ---------------------------------------------------------------------------
# 请求体
# ---------------------------------------------------------------------------


class DepartmentCreateRequest(BaseModel):
    """新建部门的请求体；路径、层级与审计字段由服务端计算。"""

    name: str = Field(..., min_length=2, max_length=100, description="部门名称，同级唯一")
    code: str = Field(..., min_length=2, max_length=20, pattern=_CODE_PATTERN, description="部门编码，全局唯一")
    description: Optional[str] = Field(default=None, max_length=500)
    parent_id: Optional[int] = Field(default=None, description="上级部门 ID，为空表示根部门")
    sort_order: int = Field(default=0, ge=0, description="排序值，越小越靠前")
    location: Optional[str] = Field(default=None, max_length=255)
    manager_id: Optional[int] = Field(default=None, description="负责人员工 ID")
    enabled: bool = True

    @model_validator(mode="after")
    def _normalize_text(self) -> "DepartmentCreateRequest":
        self.name = self.name.strip()
        if not self.name:
            raise ValueError("部门名称不能为空")
        if self.description is not None:
            self.description = self.description.strip() or None
        if self.parent_id == 0:
            self.parent_id = None
        return self


class DepartmentUpdateRequest(BaseModel):
    """更新部门的请求体，仅提交需要修改的字段；上级部门请使用移动接口。"""

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    code: Optional[str] = Field(default=None, min_length=2, max_length=20, pattern=_CODE_PATTERN)
    description: Optional[str] = Field(default=None, max_length=500)
    sort_order: Optional[int] = Field(default=None, ge=0)
    location: Optional[str] = Field(default=None, max_length=255)
    manager_id: Optional[int] = None
    enabled: Optional[bool] = None


class DepartmentMoveRequest(BaseModel):
    parent_id: Optional[int] = Field(default=None, description="新的上级部门 ID，为空表示移动为根部门")


class DepartmentEnabledRequest(BaseModel):
    enabled: bool


class DepartmentSortOrderRequest(BaseModel):
    sort_order: int = Field(..., ge=0)


# ---------------------------------------------------------------------------
# 响应体
# ---------------------------------------------------------------------------


class DepartmentItem(BaseModel):
    """部门详情。"""

    id: int
    name: str
    code: str
    description: Optional[str] = None
    location: Optional[str] = None
    parent_id: Optional[int] = None
    path: str
    level: int
    is_parent: bool
    sort_order: int
    enabled: bool
    manager_id: Optional[int] = None
    employee_count: Optional[int] = None
    create_time: Optional[str] = None
    update_time: Optional[str] = None
    created_by: Optional[int] = None
    updated_by: Optional[int] = None


class DepartmentTreeNode(BaseModel):
    """部门树节点。"""

    id: int
    name: str
    code: str
    parent_id: Optional[int]
    path: str
    level: int
    sort_order: int
    enabled: bool
    manager_id: Optional[int] = None
    has_children: bool
    employee_count: int
    children: List["DepartmentTreeNode"]


class DepartmentStatistics(BaseModel):
    department_id: int
    department_name: str
    direct_child_count: int
    total_child_count: int
    max_depth: int
    direct_employee_count: int
    total_employee_count: int
    has_manager: bool


class DepartmentRebuildResult(BaseModel):
    rewritten: int


DepartmentTreeNode.model_rebuild()

DepartmentResponse = ResponseEnvelope[DepartmentItem]
DepartmentListResponse = ResponseEnvelope[List[DepartmentItem]]
DepartmentTreeResponse = ResponseEnvelope[List[DepartmentTreeNode]]
DepartmentSubtreeResponse = ResponseEnvelope[DepartmentTreeNode]
DepartmentStatisticsResponse = ResponseEnvelope[DepartmentStatistics]
DepartmentRebuildResponse = ResponseEnvelope[DepartmentRebuildResult]
DepartmentCanDeleteResponse = ResponseEnvelope[bool]
DepartmentDeletionResponse = ResponseEnvelope[dict]
