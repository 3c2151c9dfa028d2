"""业务包元数据定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import Logger
from typing import Callable, Dict, Type

from fastapi import APIRouter


@dataclass(frozen=True)
class AppPackage:
    """描述一个业务包暴露给主应用的必要接口。

    ``exception_handlers`` 以异常类型为键，供业务包注册比 ``HTTPException``
    更具体的处理函数，主应用会先于通用处理函数挂载。
    """

    name: str
    api_router: APIRouter
    get_settings: Callable[[], object]
    setup_logging: Callable[[], None]
    logger: Logger
    init_db: Callable[[], None]
    create_response: Callable[..., dict]
    http_exception_handler: Callable[..., object]
    generic_exception_handler: Callable[..., object]
    exception_handlers: Dict[Type[Exception], Callable[..., object]] = field(default_factory=dict)
