"""枚举定义：层级校验失败的具体类型。"""

from enum import Enum


class ViolationKind(str, Enum):
    """层级变更被拒绝的原因分类，随错误响应一起返回给调用方。"""

    NOT_FOUND = "not_found"
    DUPLICATE_CODE = "duplicate_code"
    DUPLICATE_NAME = "duplicate_name"
    PARENT_NOT_FOUND = "parent_not_found"
    SELF_PARENT = "self_parent"
    CIRCULAR_REFERENCE = "circular_reference"
    HAS_CHILDREN = "has_children"
    HAS_EMPLOYEES = "has_employees"
    INTEGRITY_ERROR = "integrity_error"
    CONFLICT = "conflict"
