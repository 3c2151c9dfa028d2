"""部门缓存：使用 Redis 或内存后端缓存单个部门与整棵部门树。

缓存只做“写后失效”，从不做局部更新：
- 单个部门条目在该部门被写入后失效；
- 整棵树的投影在任意部门被写入后失效。
缓存内容不参与任何正确性判断，读取失败一律视为未命中。
"""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Optional

import redis

from app.packages.hierarchy.core.config import get_settings
from app.packages.hierarchy.core.constants import DEPARTMENT_CACHE_KEY, DEPARTMENT_TREE_CACHE_KEY
from app.packages.hierarchy.core.logger import logger


class CacheBackend:
    """缓存后端基类，定义键值读写与删除接口。"""

    def get(self, key: str) -> Optional[str]:  # pragma: no cover - interface definition
        raise NotImplementedError

    def set(self, key: str, value: str, ttl_seconds: int) -> None:  # pragma: no cover
        raise NotImplementedError

    def delete(self, *keys: str) -> None:  # pragma: no cover
        raise NotImplementedError


class RedisCacheBackend(CacheBackend):
    """基于 Redis 的缓存后端。"""

    def __init__(self, url: str) -> None:
        self._client = redis.Redis.from_url(url, decode_responses=True)
        self._client.ping()

    def get(self, key: str) -> Optional[str]:
        return self._client.get(key)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._client.set(key, value, ex=ttl_seconds)

    def delete(self, *keys: str) -> None:
        if keys:
            self._client.delete(*keys)


class InMemoryCacheBackend(CacheBackend):
    """内存后端用于测试或缺少 Redis 时的回退实现。"""

    def __init__(self) -> None:
        self._store: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            record = self._store.get(key)
            if record is None:
                return None
            value, expires_at = record
            if expires_at < time.monotonic():
                self._store.pop(key, None)
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._store[key] = (value, time.monotonic() + ttl_seconds)

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()


class NullCacheBackend(CacheBackend):
    """关闭缓存时使用：永远未命中。"""

    def get(self, key: str) -> Optional[str]:
        return None

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        return None

    def delete(self, *keys: str) -> None:
        return None


def _build_backend() -> CacheBackend:
    settings = get_settings()
    mode = (settings.cache_backend or "").strip().lower()
    if mode == "none":
        logger.info("Department cache disabled")
        return NullCacheBackend()
    if mode == "memory":
        logger.info("Department cache using in-memory store")
        return InMemoryCacheBackend()
    try:
        backend = RedisCacheBackend(settings.redis_url)
        logger.info("Department cache initialized with Redis at %s", settings.redis_url)
        return backend
    except Exception as exc:  # pragma: no cover - fallback path
        logger.warning("Redis unavailable (%s), falling back to in-memory department cache", exc)
        return InMemoryCacheBackend()


class DepartmentCache:
    """部门缓存门面：序列化为 JSON 存取，后端异常只记录日志。"""

    def __init__(self, backend: Optional[CacheBackend] = None) -> None:
        self._backend = backend

    @property
    def backend(self) -> CacheBackend:
        if self._backend is None:
            self._backend = _build_backend()
        return self._backend

    def use_backend(self, backend: CacheBackend) -> None:
        """替换缓存后端（测试中注入内存后端）。"""
        self._backend = backend

    @staticmethod
    def department_key(department_id: int) -> str:
        return DEPARTMENT_CACHE_KEY.format(department_id=department_id)

    def _get_json(self, key: str) -> Any:
        try:
            raw = self.backend.get(key)
        except Exception as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    def _set_json(self, key: str, value: Any) -> None:
        try:
            self.backend.set(key, json.dumps(value, ensure_ascii=False), get_settings().cache_ttl_seconds)
        except Exception as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    def _delete(self, *keys: str) -> None:
        try:
            self.backend.delete(*keys)
        except Exception as exc:
            logger.warning("Cache invalidation failed for %s: %s", ", ".join(keys), exc)

    def get_department(self, department_id: int) -> Optional[dict[str, Any]]:
        return self._get_json(self.department_key(department_id))

    def set_department(self, department_id: int, payload: dict[str, Any]) -> None:
        self._set_json(self.department_key(department_id), payload)

    def get_tree(self) -> Optional[list[dict[str, Any]]]:
        return self._get_json(DEPARTMENT_TREE_CACHE_KEY)

    def set_tree(self, payload: list[dict[str, Any]]) -> None:
        self._set_json(DEPARTMENT_TREE_CACHE_KEY, payload)

    def invalidate(self, *department_ids: Optional[int]) -> None:
        """使指定部门的单体缓存失效，忽略空 ID。"""
        keys = [self.department_key(i) for i in department_ids if i is not None]
        if keys:
            self._delete(*keys)

    def invalidate_tree_projection(self) -> None:
        self._delete(DEPARTMENT_TREE_CACHE_KEY)


department_cache = DepartmentCache()
