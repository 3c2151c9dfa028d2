"""操作人上下文：记录当前请求的操作人 ID，供审计字段自动填充。

- 由 `ActorMiddleware` 从请求头 `X-Actor-Id` 解析写入；
- 部门的 `created_by` / `updated_by` 只能来自这里，调用方请求体无法直接设置。
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import Optional

_actor_ctx: ContextVar[Optional[int]] = ContextVar("actor_id", default=None)


def set_current_actor(actor_id: Optional[int]) -> None:
    """设置当前请求的操作人。"""
    _actor_ctx.set(actor_id)


def get_current_actor() -> Optional[int]:
    """获取当前操作人（未设置时为 ``None``，例如系统脚本或初始化数据）。"""
    return _actor_ctx.get()


def parse_actor_id(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    token = raw.strip()
    if not token.isdigit():
        return None
    return int(token)
