"""异常处理模块：定义统一的业务异常、层级校验异常与响应格式。"""

from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.packages.hierarchy.core.constants import (
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_CONFLICT,
    HTTP_STATUS_INTERNAL_SERVER_ERROR,
    HTTP_STATUS_NOT_FOUND,
)
from app.packages.hierarchy.core.enums import ViolationKind
from app.packages.hierarchy.core.logger import logger


class AppException(HTTPException):
    """携带统一响应结构的业务异常，方便在全局处理中转换响应体。"""

    def __init__(self, msg: str, code: int = status.HTTP_400_BAD_REQUEST, data=None) -> None:
        super().__init__(status_code=code, detail=msg)
        self.data = data


class HierarchyError(AppException):
    """部门层级相关的业务异常基类，`kind` 标识具体的违规类型。"""

    kind: ViolationKind = ViolationKind.INTEGRITY_ERROR
    status_code_default: int = HTTP_STATUS_BAD_REQUEST

    def __init__(self, msg: str, *, data: Optional[dict[str, Any]] = None) -> None:
        payload = {"kind": self.kind.value}
        if data:
            payload.update(data)
        super().__init__(msg, self.status_code_default, payload)

    @property
    def msg(self) -> str:
        return str(self.detail)


class DepartmentNotFoundError(HierarchyError):
    kind = ViolationKind.NOT_FOUND
    status_code_default = HTTP_STATUS_NOT_FOUND


class DuplicateCodeError(HierarchyError):
    kind = ViolationKind.DUPLICATE_CODE
    status_code_default = HTTP_STATUS_CONFLICT


class DuplicateNameError(HierarchyError):
    kind = ViolationKind.DUPLICATE_NAME
    status_code_default = HTTP_STATUS_CONFLICT


class ParentNotFoundError(HierarchyError):
    kind = ViolationKind.PARENT_NOT_FOUND
    status_code_default = HTTP_STATUS_NOT_FOUND


class SelfParentError(HierarchyError):
    kind = ViolationKind.SELF_PARENT


class CircularReferenceError(HierarchyError):
    kind = ViolationKind.CIRCULAR_REFERENCE


class HasChildrenError(HierarchyError):
    kind = ViolationKind.HAS_CHILDREN


class HasEmployeesError(HierarchyError):
    kind = ViolationKind.HAS_EMPLOYEES


class TreeIntegrityError(HierarchyError):
    """树结构本身已损坏（例如父指针成环），只能通过人工修复数据解决。"""

    kind = ViolationKind.INTEGRITY_ERROR
    status_code_default = HTTP_STATUS_INTERNAL_SERVER_ERROR


class ConflictError(HierarchyError):
    """并发写入冲突在有限次重试后仍未解决。"""

    kind = ViolationKind.CONFLICT
    status_code_default = HTTP_STATUS_CONFLICT


EXCEPTION_BY_KIND: dict[ViolationKind, type[HierarchyError]] = {
    cls.kind: cls
    for cls in (
        DepartmentNotFoundError,
        DuplicateCodeError,
        DuplicateNameError,
        ParentNotFoundError,
        SelfParentError,
        CircularReferenceError,
        HasChildrenError,
        HasEmployeesError,
        TreeIntegrityError,
        ConflictError,
    )
}


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # pragma: no cover - framework glue
    """将 FastAPI 的 ``HTTPException`` 转换为统一响应格式。"""
    if exc.status_code >= HTTP_STATUS_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    payload = {"msg": exc.detail, "data": getattr(exc, "data", None), "code": exc.status_code}
    return JSONResponse(status_code=exc.status_code, content=payload)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # pragma: no cover - framework glue
    """兜底处理：将未捕获异常转换为标准的 500 响应结构。"""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    payload = {
        "msg": "服务器内部错误",
        "data": None,
        "code": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)


async def hierarchy_exception_handler(request: Request, exc: HierarchyError) -> JSONResponse:
    """层级违规按 ``kind`` 记录告警后输出统一响应；数据损坏以 error 级别记录。"""
    if exc.status_code >= HTTP_STATUS_INTERNAL_SERVER_ERROR:
        logger.error(
            "%s %s rejected (%s): %s data=%s",
            request.method,
            request.url.path,
            exc.kind.value,
            exc.detail,
            exc.data,
            extra={"kind": exc.kind.value},
        )
    else:
        logger.warning(
            "%s %s rejected (%s): %s",
            request.method,
            request.url.path,
            exc.kind.value,
            exc.detail,
            extra={"kind": exc.kind.value},
        )
    payload = {"msg": exc.detail, "data": exc.data, "code": exc.status_code}
    return JSONResponse(status_code=exc.status_code, content=payload)
