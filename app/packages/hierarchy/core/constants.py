"""常量定义：HTTP 状态码、缓存键与默认种子数据。"""

HTTP_STATUS_OK = 200
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_CONFLICT = 409
HTTP_STATUS_INTERNAL_SERVER_ERROR = 500

CACHE_KEY_PREFIX = "hierarchy"
DEPARTMENT_CACHE_KEY = f"{CACHE_KEY_PREFIX}:department:{{department_id}}"
DEPARTMENT_TREE_CACHE_KEY = f"{CACHE_KEY_PREFIX}:tree"

# 初始化时写入的默认部门：(名称, 编码, 描述, 上级编码, 排序)
DEFAULT_DEPARTMENTS = (
    ("Company", "COMP", "Root company department", None, 1),
    ("Human Resources", "HR", "Human Resources Department", "COMP", 1),
    ("Information Technology", "IT", "Information Technology Department", "COMP", 2),
    ("Finance", "FIN", "Finance Department", "COMP", 3),
    ("Operations", "OPS", "Operations Department", "COMP", 4),
)
