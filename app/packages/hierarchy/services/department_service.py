"""部门层级引擎：对外提供部门的树形查询与结构变更。

- 写操作：创建、更新、移动、删除、全量路径重建，每个操作一个事务；
- 读操作：部门详情、整棵树、子树、祖先链、后代、统计；
- 移动与改编码时，通过一次 `path` 前缀查询取出整棵子树，统一替换路径前缀；
- 缓存只在提交成功后失效，从不参与正确性判断。
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.packages.hierarchy.core.actor import get_current_actor
from app.packages.hierarchy.core.cache import DepartmentCache, department_cache
from app.packages.hierarchy.core.config import get_settings
from app.packages.hierarchy.core.constants import HTTP_STATUS_BAD_REQUEST
from app.packages.hierarchy.core.exceptions import (
    AppException,
    ConflictError,
    DepartmentNotFoundError,
    TreeIntegrityError,
)
from app.packages.hierarchy.core.logger import logger
from app.packages.hierarchy.core.timezone import format_datetime, now as tz_now
from app.packages.hierarchy.crud.departments import department_crud
from app.packages.hierarchy.db.session import transaction
from app.packages.hierarchy.models.department import Department
from app.packages.hierarchy.services.department_validator import DepartmentValidator, department_validator
from app.packages.hierarchy.services.employee_directory import EmployeeDirectory, employee_directory
from app.packages.hierarchy.utils.path_utils import (
    ROOT_LEVEL,
    child_path,
    level_of,
    parse_path,
    build_path,
    rebase_path,
    validate_code,
)

T = TypeVar("T")

# 更新接口允许修改的字段；parent_id / path / level 只能通过 move 改变
_MUTABLE_FIELDS = ("name", "code", "description", "location", "manager_id", "enabled", "sort_order")


class DepartmentService:
    """部门层级引擎。"""

    def __init__(
        self,
        validator: DepartmentValidator = department_validator,
        employees: EmployeeDirectory = employee_directory,
        cache: DepartmentCache = department_cache,
    ) -> None:
        self.validator = validator
        self.employees = employees
        self.cache = cache

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def get_department(self, db: Session, department_id: int) -> Dict[str, Any]:
        """返回部门详情（含在职人数），命中缓存时直接返回。"""
        cached = self.cache.get_department(department_id)
        if cached is not None:
            return cached
        department = self._get_or_404(db, department_id)
        data = self.serialize_department(
            department,
            employee_count=self.employees.count_employees_in_department(db, department.id),
        )
        self.cache.set_department(department_id, data)
        return data

    def get_department_by_code(self, db: Session, code: str) -> Dict[str, Any]:
        department = department_crud.get_by_code(db, code)
        if department is None:
            raise DepartmentNotFoundError(f"部门编码 {code} 不存在", data={"code": code})
        return self.get_department(db, department.id)

    def list_departments(self, db: Session) -> List[Dict[str, Any]]:
        return self._serialize_many(db, department_crud.list_all(db))

    def list_roots(self, db: Session) -> List[Dict[str, Any]]:
        return self._serialize_many(db, department_crud.list_roots(db))

    def list_children(self, db: Session, parent_id: int) -> List[Dict[str, Any]]:
        self._get_or_404(db, parent_id)
        return self._serialize_many(db, department_crud.list_children(db, parent_id))

    def list_by_level(self, db: Session, level: int) -> List[Dict[str, Any]]:
        return self._serialize_many(db, department_crud.list_by_level(db, level))

    def search(self, db: Session, keyword: str) -> List[Dict[str, Any]]:
        if not keyword or not keyword.strip():
            return []
        return self._serialize_many(db, department_crud.search_by_name(db, keyword))

    def get_tree(self, db: Session) -> List[Dict[str, Any]]:
        """返回整片部门森林，同级按 `sort_order, id` 排序；整棵树作为一个缓存单元。"""
        cached = self.cache.get_tree()
        if cached is not None:
            return cached

        # 全量加载后在内存中组装树，每个节点只经过一次
        items = department_crud.list_all(db)
        children_map = self._children_map(items)
        counts = self.employees.count_employees_in_departments(db, [item.id for item in items])
        tree = [self._build_tree_node(root, children_map, counts) for root in children_map.get(None, [])]
        self.cache.set_tree(tree)
        return tree

    def get_subtree(self, db: Session, department_id: int) -> Dict[str, Any]:
        """以指定部门为根返回子树。"""
        department = self._get_or_404(db, department_id)
        items = department_crud.list_by_path_prefix(db, department.path, include_self=True)
        children_map = self._children_map(item for item in items if item.id != department.id)
        counts = self.employees.count_employees_in_departments(db, [item.id for item in items])
        return self._build_tree_node(department, children_map, counts)

    def get_path(self, db: Session, department_id: int) -> List[Dict[str, Any]]:
        """沿 `parent_id` 向上回溯，返回从根到自身的部门链。

        回溯步数以 `level + 1` 为上限，遇到重复节点、悬空父指针或超出上限时
        视为数据损坏，抛出 :class:`TreeIntegrityError`。
        """
        department = self._get_or_404(db, department_id)
        max_steps = max(department.level, ROOT_LEVEL) - ROOT_LEVEL + 1
        chain: List[Department] = []
        visited: set[int] = set()
        current: Optional[Department] = department
        while current is not None:
            if current.id in visited or len(chain) >= max_steps:
                logger.error("Parent chain of department %s is inconsistent at %s", department_id, current.id)
                raise TreeIntegrityError(
                    "部门层级数据不一致，请执行路径重建",
                    data={"department_id": department_id, "at": current.id},
                )
            visited.add(current.id)
            chain.append(current)
            if current.parent_id is None:
                break
            parent = department_crud.get(db, current.parent_id)
            if parent is None:
                raise TreeIntegrityError(
                    "上级部门记录缺失，请执行路径重建",
                    data={"department_id": current.id, "parent_id": current.parent_id},
                )
            current = parent
        chain.reverse()
        return self._serialize_many(db, chain)

    def get_ancestors(self, db: Session, department_id: int) -> List[Dict[str, Any]]:
        return self.get_path(db, department_id)[:-1]

    def get_descendants(self, db: Session, department_id: int) -> List[Dict[str, Any]]:
        """一次前缀查询返回全部后代（不含自身），按路径排序。"""
        department = self._get_or_404(db, department_id)
        return self._serialize_many(
            db, department_crud.list_by_path_prefix(db, department.path, include_self=False)
        )

    def get_statistics(self, db: Session, department_id: int) -> Dict[str, Any]:
        department = self._get_or_404(db, department_id)
        descendants = department_crud.list_by_path_prefix(db, department.path, include_self=False)
        max_depth = max((item.level - department.level for item in descendants), default=0)

        counts = self.employees.count_employees_in_departments(
            db, [department.id, *(item.id for item in descendants)]
        )
        direct_employee_count = counts.get(department.id, 0)
        return {
            "department_id": department.id,
            "department_name": department.name,
            "direct_child_count": department_crud.count_children(db, department.id),
            "total_child_count": len(descendants),
            "max_depth": max_depth,
            "direct_employee_count": direct_employee_count,
            "total_employee_count": sum(counts.values()),
            "has_manager": department.manager_id is not None,
        }

    def can_delete(self, db: Session, department_id: int) -> bool:
        self._get_or_404(db, department_id)
        return self.validator.validate_delete(db, department_id) is None

    # ------------------------------------------------------------------
    # 变更
    # ------------------------------------------------------------------

    def create(
        self,
        db: Session,
        *,
        name: str,
        code: str,
        parent_id: Optional[int] = None,
        description: Optional[str] = None,
        location: Optional[str] = None,
        manager_id: Optional[int] = None,
        enabled: bool = True,
        sort_order: int = 0,
    ) -> Department:
        """创建部门：校验编码唯一与上级存在，按上级当前路径计算自身路径。"""
        name_value = self._normalize_name(name)
        code_value = self._normalize_code(code)
        sort_order = self._normalize_sort_order(sort_order)

        try:
            with transaction(db):
                parent = department_crud.get(db, parent_id, for_update=True) if parent_id is not None else None
                violation = self.validator.validate_create(
                    db, code=code_value, parent_id=parent_id, name=name_value
                )
                if violation is not None:
                    raise violation.to_exception()

                path = child_path(parent.path if parent is not None else None, code_value)
                actor_id = get_current_actor()
                timestamp = tz_now()
                department = department_crud.create(
                    db,
                    {
                        "name": name_value,
                        "code": code_value,
                        "description": description,
                        "location": location,
                        "parent_id": parent_id,
                        "path": path,
                        "level": level_of(path),
                        "is_parent": False,
                        "sort_order": sort_order,
                        "enabled": enabled,
                        "manager_id": manager_id,
                        "created_by": actor_id,
                        "updated_by": actor_id,
                        "create_time": timestamp,
                        "update_time": timestamp,
                    },
                    auto_commit=False,
                )
                if parent is not None and not parent.is_parent:
                    parent.is_parent = True
                    self._touch(parent)
        except IntegrityError as exc:
            # 并发创建同编码/同名部门时由数据库唯一约束兜底
            raise ConflictError(
                "部门编码或名称与现有记录冲突", data={"code": code_value, "name": name_value}
            ) from exc

        db.refresh(department)
        logger.info(
            "Department created: id=%s path=%s",
            department.id,
            department.path,
            extra={"department_id": department.id, "operation": "create", "path": department.path},
        )
        self.cache.invalidate(parent_id)
        self.cache.invalidate_tree_projection()
        return department

    def update(self, db: Session, *, department_id: int, payload: Dict[str, Any]) -> Department:
        """更新部门的可变字段；修改编码时整棵子树的路径随之改写。"""
        changes = {key: payload[key] for key in _MUTABLE_FIELDS if key in payload}
        if "name" in changes:
            changes["name"] = self._normalize_name(changes["name"])
        if "code" in changes:
            changes["code"] = self._normalize_code(changes["code"])
        for flag in ("enabled", "sort_order"):
            if flag in changes and changes[flag] is None:
                changes.pop(flag)
        if "sort_order" in changes:
            changes["sort_order"] = self._normalize_sort_order(changes["sort_order"])

        def apply() -> Tuple[Department, List[int]]:
            department = self._get_or_404(db, department_id, for_update=True)
            violation = self.validator.validate_update(
                db, department, name=changes.get("name"), code=changes.get("code")
            )
            if violation is not None:
                raise violation.to_exception()

            touched_ids = [department.id]
            new_code = changes.get("code")
            if new_code is not None and new_code != department.code:
                old_path = department.path
                new_path = build_path(parse_path(old_path)[:-1], new_code)
                touched = self._repath_subtree(db, old_path, new_path)
                touched_ids = [item.id for item in touched]

            for key, value in changes.items():
                setattr(department, key, value)
            self._touch(department)
            department_crud.save(db, department, auto_commit=False)
            return department, touched_ids

        department, touched_ids = self._run_with_retry(db, "update", apply)
        db.refresh(department)
        logger.info(
            "Department updated: id=%s fields=%s",
            department.id,
            sorted(changes),
            extra={"department_id": department.id, "operation": "update", "path": department.path},
        )
        self.cache.invalidate(*touched_ids)
        self.cache.invalidate_tree_projection()
        return department

    def set_enabled(self, db: Session, department_id: int, enabled: bool) -> Department:
        return self.update(db, department_id=department_id, payload={"enabled": enabled})

    def update_sort_order(self, db: Session, department_id: int, sort_order: int) -> Department:
        return self.update(db, department_id=department_id, payload={"sort_order": sort_order})

    def move(self, db: Session, department_id: int, new_parent_id: Optional[int]) -> Department:
        """把部门连同整棵子树挂到新的上级下（``None`` 表示提升为根）。

        子树通过一次 `path` 前缀查询加锁取出，逐行替换路径前缀并重算层级，
        在同一事务内提交；任一步失败则整体回滚。
        """

        def apply() -> Tuple[Department, List[int]]:
            department = self._get_or_404(db, department_id, for_update=True)
            new_parent = (
                department_crud.get(db, new_parent_id, for_update=True) if new_parent_id is not None else None
            )
            violation = self.validator.validate_move(db, department_id, new_parent_id)
            if violation is not None:
                raise violation.to_exception()

            old_parent_id = department.parent_id
            if old_parent_id == new_parent_id:
                return department, []

            new_path = child_path(new_parent.path if new_parent is not None else None, department.code)
            touched = self._repath_subtree(db, department.path, new_path)
            department.parent_id = new_parent_id

            if old_parent_id is not None:
                old_parent = department_crud.get(db, old_parent_id, for_update=True)
                if old_parent is not None:
                    # 尚未 flush，数据库里该部门仍挂在旧上级下，需排除自身
                    still_parent = department_crud.exists_children(db, old_parent_id, exclude_id=department.id)
                    if old_parent.is_parent != still_parent:
                        old_parent.is_parent = still_parent
                        self._touch(old_parent)
                        touched.append(old_parent)
            if new_parent is not None and not new_parent.is_parent:
                new_parent.is_parent = True
                self._touch(new_parent)
                touched.append(new_parent)

            department_crud.save_all(db, touched, auto_commit=False)
            return department, [item.id for item in touched]

        department, touched_ids = self._run_with_retry(db, "move", apply)
        if not touched_ids:
            logger.info("Department %s already under parent %s, nothing to move", department_id, new_parent_id)
            return department

        db.refresh(department)
        logger.info(
            "Department moved: id=%s new_parent=%s path=%s rows=%s",
            department.id,
            new_parent_id,
            department.path,
            len(touched_ids),
            extra={"department_id": department.id, "operation": "move", "path": department.path},
        )
        self.cache.invalidate(*touched_ids)
        self.cache.invalidate_tree_projection()
        return department

    def delete(self, db: Session, department_id: int) -> None:
        """删除叶子部门；存在下级部门或在职员工时拒绝。"""

        def apply() -> Optional[int]:
            department = self._get_or_404(db, department_id, for_update=True)
            violation = self.validator.validate_delete(db, department_id)
            if violation is not None:
                raise violation.to_exception()

            parent_id = department.parent_id
            department_crud.hard_delete(db, department, auto_commit=False)
            if parent_id is not None:
                parent = department_crud.get(db, parent_id, for_update=True)
                if parent is not None:
                    still_parent = department_crud.exists_children(db, parent_id)
                    if parent.is_parent != still_parent:
                        parent.is_parent = still_parent
                        self._touch(parent)
            return parent_id

        parent_id = self._run_with_retry(db, "delete", apply)
        logger.info(
            "Department deleted: id=%s", department_id, extra={"department_id": department_id, "operation": "delete"}
        )
        self.cache.invalidate(department_id, parent_id)
        self.cache.invalidate_tree_projection()

    def rebuild_all_paths(self, db: Session) -> int:
        """仅依据 `parent_id` 重新计算所有部门的 path / level / is_parent。

        先从所有根节点出发规划新值（每个节点只访问一次），若存在无法从根到达的
        部门（父指针成环或悬空），直接报告数据损坏且不写入任何行；
        否则在一个事务中写回发生变化的行，返回被改写的行数。
        """
        with transaction(db):
            items = department_crud.query(db).with_for_update().all()
            by_id = {item.id: item for item in items}
            children_map = self._children_map(items)

            planned: Dict[int, Tuple[str, int, bool]] = {}
            stack: List[Tuple[Department, Optional[str]]] = [
                (root, None) for root in reversed(children_map.get(None, []))
            ]
            while stack:
                node, parent_path = stack.pop()
                try:
                    path = child_path(parent_path, node.code)
                except ValueError as exc:
                    raise TreeIntegrityError(
                        f"部门 {node.id} 的编码无法构成路径", data={"department_id": node.id}
                    ) from exc
                children = children_map.get(node.id, [])
                planned[node.id] = (path, level_of(path), bool(children))
                stack.extend((child, path) for child in reversed(children))

            unreachable = sorted(set(by_id) - set(planned))
            if unreachable:
                logger.error("Department tree is corrupted, unreachable rows: %s", unreachable)
                raise TreeIntegrityError(
                    "检测到部门层级存在循环引用或悬空的上级部门",
                    data={"department_ids": unreachable},
                )

            changed: List[Department] = []
            for department_id, (path, level, is_parent) in planned.items():
                item = by_id[department_id]
                if (item.path, item.level, item.is_parent) == (path, level, is_parent):
                    continue
                item.path, item.level, item.is_parent = path, level, is_parent
                self._touch(item)
                changed.append(item)
            department_crud.save_all(db, changed, auto_commit=False)

        logger.info("Department paths rebuilt: visited=%s rewritten=%s", len(planned), len(changed))
        self.cache.invalidate(*(item.id for item in changed))
        self.cache.invalidate_tree_projection()
        return len(changed)

    # ------------------------------------------------------------------
    # 内部工具
    # ------------------------------------------------------------------

    def _repath_subtree(self, db: Session, old_path: str, new_path: str) -> List[Department]:
        """加锁取出 `old_path` 对应的整棵子树，把路径前缀替换为 `new_path`。"""
        subtree = department_crud.list_by_path_prefix(db, old_path, include_self=True, for_update=True)
        for item in subtree:
            item.path = rebase_path(item.path, old_path, new_path)
            item.level = level_of(item.path)
            self._touch(item)
        return subtree

    def _run_with_retry(self, db: Session, operation: str, fn: Callable[[], T]) -> T:
        """在事务中执行写操作，乐观锁或锁等待冲突时有限次重试。"""
        attempts = max(1, get_settings().hierarchy_max_retries)
        last_error: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                with transaction(db):
                    return fn()
            except (StaleDataError, OperationalError) as exc:
                last_error = exc
                logger.warning(
                    "Department %s hit a concurrent write (attempt %s/%s): %s",
                    operation,
                    attempt,
                    attempts,
                    exc,
                    extra={"operation": operation},
                )
        raise ConflictError(
            "部门数据已被并发修改，请稍后重试", data={"operation": operation}
        ) from last_error

    def _get_or_404(self, db: Session, department_id: int, *, for_update: bool = False) -> Department:
        department = department_crud.get(db, department_id, for_update=for_update)
        if department is None:
            raise DepartmentNotFoundError("部门不存在", data={"department_id": department_id})
        return department

    @staticmethod
    def _touch(department: Department) -> None:
        department.updated_by = get_current_actor()
        department.update_time = tz_now()

    @staticmethod
    def _normalize_name(name: Optional[str]) -> str:
        value = (name or "").strip()
        if not value:
            raise AppException("部门名称不能为空", HTTP_STATUS_BAD_REQUEST)
        return value

    @staticmethod
    def _normalize_sort_order(sort_order: Optional[int]) -> int:
        value = 0 if sort_order is None else int(sort_order)
        if value < 0:
            raise AppException("排序值不能为负数", HTTP_STATUS_BAD_REQUEST)
        return value

    @staticmethod
    def _normalize_code(code: Optional[str]) -> str:
        try:
            return validate_code((code or "").strip())
        except ValueError as exc:
            raise AppException(f"部门编码不合法：{exc}", HTTP_STATUS_BAD_REQUEST) from exc

    @staticmethod
    def _children_map(items: Iterable[Department]) -> Dict[Optional[int], List[Department]]:
        children_map: Dict[Optional[int], List[Department]] = defaultdict(list)
        for item in items:
            children_map[item.parent_id].append(item)
        for siblings in children_map.values():
            siblings.sort(key=lambda n: (n.sort_order, n.id))
        return children_map

    def _build_tree_node(
        self,
        node: Department,
        children_map: Dict[Optional[int], List[Department]],
        counts: Dict[int, int],
    ) -> Dict[str, Any]:
        children = children_map.get(node.id, [])
        return {
            "id": node.id,
            "name": node.name,
            "code": node.code,
            "parent_id": node.parent_id,
            "path": node.path,
            "level": node.level,
            "sort_order": node.sort_order,
            "enabled": bool(node.enabled),
            "manager_id": node.manager_id,
            "has_children": bool(children),
            "employee_count": counts.get(node.id, 0),
            "children": [self._build_tree_node(child, children_map, counts) for child in children],
        }

    def _serialize_many(self, db: Session, items: List[Department]) -> List[Dict[str, Any]]:
        counts = self.employees.count_employees_in_departments(db, [item.id for item in items])
        return [self.serialize_department(item, employee_count=counts.get(item.id, 0)) for item in items]

    @staticmethod
    def serialize_department(department: Department, *, employee_count: Optional[int] = None) -> Dict[str, Any]:
        return {
            "id": department.id,
            "name": department.name,
            "code": department.code,
            "description": department.description,
            "location": department.location,
            "parent_id": department.parent_id,
            "path": department.path,
            "level": department.level,
            "is_parent": bool(department.is_parent),
            "sort_order": department.sort_order,
            "enabled": bool(department.enabled),
            "manager_id": department.manager_id,
            "employee_count": employee_count,
            "create_time": format_datetime(department.create_time),
            "update_time": format_datetime(department.update_time),
            "created_by": department.created_by,
            "updated_by": department.updated_by,
        }


department_service = DepartmentService()
