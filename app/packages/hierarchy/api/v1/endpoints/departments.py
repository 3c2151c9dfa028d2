"""部门管理路由定义。"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.packages.hierarchy.api.v1.schemas.departments import (
    DepartmentCanDeleteResponse,
    DepartmentCreateRequest,
    DepartmentDeletionResponse,
    DepartmentEnabledRequest,
    DepartmentListResponse,
    DepartmentMoveRequest,
    DepartmentRebuildResponse,
    DepartmentResponse,
    DepartmentSortOrderRequest,
    DepartmentStatisticsResponse,
    DepartmentSubtreeResponse,
    DepartmentTreeResponse,
    DepartmentUpdateRequest,
)
from app.packages.hierarchy.core.constants import HTTP_STATUS_OK
from app.packages.hierarchy.core.dependencies import get_db
from app.packages.hierarchy.core.responses import create_response
from app.packages.hierarchy.services.department_service import department_service

router = APIRouter(prefix="/departments", tags=["departments"])


# 静态路径需声明在 /{department_id} 之前


@router.get("", response_model=DepartmentListResponse)
def list_departments(db: Session = Depends(get_db)) -> DepartmentListResponse:
    """返回全部部门（平铺列表）。"""
    return create_response("获取部门列表成功", department_service.list_departments(db), HTTP_STATUS_OK)


@router.post("", response_model=DepartmentResponse)
def create_department(payload: DepartmentCreateRequest, db: Session = Depends(get_db)) -> DepartmentResponse:
    """创建部门。"""
    department = department_service.create(db, **payload.model_dump())
    data = department_service.serialize_department(department, employee_count=0)
    return create_response("创建部门成功", data, HTTP_STATUS_OK)


@router.get("/tree", response_model=DepartmentTreeResponse)
def get_department_tree(db: Session = Depends(get_db)) -> DepartmentTreeResponse:
    """以树形结构返回全部部门。"""
    return create_response("获取部门树成功", department_service.get_tree(db), HTTP_STATUS_OK)


@router.get("/roots", response_model=DepartmentListResponse)
def list_root_departments(db: Session = Depends(get_db)) -> DepartmentListResponse:
    return create_response("获取根部门成功", department_service.list_roots(db), HTTP_STATUS_OK)


@router.get("/search", response_model=DepartmentListResponse)
def search_departments(
    keyword: str = Query(..., min_length=1, description="按部门名称模糊搜索"),
    db: Session = Depends(get_db),
) -> DepartmentListResponse:
    return create_response("搜索部门成功", department_service.search(db, keyword), HTTP_STATUS_OK)


@router.get("/level/{level}", response_model=DepartmentListResponse)
def list_departments_by_level(level: int, db: Session = Depends(get_db)) -> DepartmentListResponse:
    return create_response("获取部门列表成功", department_service.list_by_level(db, level), HTTP_STATUS_OK)


@router.get("/code/{code}", response_model=DepartmentResponse)
def get_department_by_code(code: str, db: Session = Depends(get_db)) -> DepartmentResponse:
    return create_response("获取部门详情成功", department_service.get_department_by_code(db, code), HTTP_STATUS_OK)


@router.post("/rebuild-paths", response_model=DepartmentRebuildResponse)
def rebuild_department_paths(db: Session = Depends(get_db)) -> DepartmentRebuildResponse:
    """依据上级指针重建全部部门的路径、层级与父节点标记。"""
    rewritten = department_service.rebuild_all_paths(db)
    return create_response("重建部门路径成功", {"rewritten": rewritten}, HTTP_STATUS_OK)


@router.get("/{department_id}", response_model=DepartmentResponse)
def get_department(department_id: int, db: Session = Depends(get_db)) -> DepartmentResponse:
    return create_response("获取部门详情成功", department_service.get_department(db, department_id), HTTP_STATUS_OK)


@router.put("/{department_id}", response_model=DepartmentResponse)
def update_department(
    department_id: int,
    payload: DepartmentUpdateRequest,
    db: Session = Depends(get_db),
) -> DepartmentResponse:
    """更新部门基本信息（不含上级部门）。"""
    department = department_service.update(
        db, department_id=department_id, payload=payload.model_dump(exclude_unset=True)
    )
    return create_response("更新部门成功", department_service.serialize_department(department), HTTP_STATUS_OK)


@router.delete("/{department_id}", response_model=DepartmentDeletionResponse)
def delete_department(department_id: int, db: Session = Depends(get_db)) -> DepartmentDeletionResponse:
    """删除叶子部门；存在下级部门或员工时返回 400。"""
    department_service.delete(db, department_id)
    return create_response("删除部门成功", {"id": department_id}, HTTP_STATUS_OK)


@router.put("/{department_id}/move", response_model=DepartmentResponse)
def move_department(
    department_id: int,
    payload: DepartmentMoveRequest,
    db: Session = Depends(get_db),
) -> DepartmentResponse:
    """调整上级部门，整棵子树随之移动。"""
    department = department_service.move(db, department_id, payload.parent_id)
    return create_response("移动部门成功", department_service.serialize_department(department), HTTP_STATUS_OK)


@router.put("/{department_id}/enabled", response_model=DepartmentResponse)
def set_department_enabled(
    department_id: int,
    payload: DepartmentEnabledRequest,
    db: Session = Depends(get_db),
) -> DepartmentResponse:
    department = department_service.set_enabled(db, department_id, payload.enabled)
    return create_response("更新部门状态成功", department_service.serialize_department(department), HTTP_STATUS_OK)


@router.put("/{department_id}/sort-order", response_model=DepartmentResponse)
def update_department_sort_order(
    department_id: int,
    payload: DepartmentSortOrderRequest,
    db: Session = Depends(get_db),
) -> DepartmentResponse:
    department = department_service.update_sort_order(db, department_id, payload.sort_order)
    return create_response("更新部门排序成功", department_service.serialize_department(department), HTTP_STATUS_OK)


@router.get("/{department_id}/subtree", response_model=DepartmentSubtreeResponse)
def get_department_subtree(department_id: int, db: Session = Depends(get_db)) -> DepartmentSubtreeResponse:
    return create_response("获取部门子树成功", department_service.get_subtree(db, department_id), HTTP_STATUS_OK)


@router.get("/{department_id}/children", response_model=DepartmentListResponse)
def list_child_departments(department_id: int, db: Session = Depends(get_db)) -> DepartmentListResponse:
    return create_response("获取下级部门成功", department_service.list_children(db, department_id), HTTP_STATUS_OK)


@router.get("/{department_id}/path", response_model=DepartmentListResponse)
def get_department_path(department_id: int, db: Session = Depends(get_db)) -> DepartmentListResponse:
    """返回从根部门到当前部门的完整链路。"""
    return create_response("获取部门路径成功", department_service.get_path(db, department_id), HTTP_STATUS_OK)


@router.get("/{department_id}/ancestors", response_model=DepartmentListResponse)
def get_department_ancestors(department_id: int, db: Session = Depends(get_db)) -> DepartmentListResponse:
    return create_response("获取上级部门成功", department_service.get_ancestors(db, department_id), HTTP_STATUS_OK)


@router.get("/{department_id}/descendants", response_model=DepartmentListResponse)
def get_department_descendants(department_id: int, db: Session = Depends(get_db)) -> DepartmentListResponse:
    return create_response(
        "获取下属部门成功", department_service.get_descendants(db, department_id), HTTP_STATUS_OK
    )


@router.get("/{department_id}/can-delete", response_model=DepartmentCanDeleteResponse)
def can_delete_department(department_id: int, db: Session = Depends(get_db)) -> DepartmentCanDeleteResponse:
    return create_response("校验成功", department_service.can_delete(db, department_id), HTTP_STATUS_OK)


@router.get("/{department_id}/statistics", response_model=DepartmentStatisticsResponse)
def get_department_statistics(department_id: int, db: Session = Depends(get_db)) -> DepartmentStatisticsResponse:
    return create_response(
        "获取部门统计成功", department_service.get_statistics(db, department_id), HTTP_STATUS_OK
    )
