"""业务包契约：主应用只通过 ``AppPackage`` 与具体业务交互。"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import Logger
from typing import Any, Awaitable, Callable, Mapping

from fastapi import APIRouter
from starlette.responses import Response

ExceptionHandler = Callable[..., Awaitable[Response]]


@dataclass(frozen=True)
class AppPackage:
    name: str
    router: APIRouter
    settings: Callable[[], Any]
    configure_logging: Callable[[], None]
    logger: Logger
    # 启动时建表与补齐种子数据；停止时释放外部客户端
    startup: Callable[[], None]
    shutdown: Callable[[], None]
    exception_handlers: Mapping[Any, ExceptionHandler] = field(default_factory=dict)
