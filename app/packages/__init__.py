"""业务包注册表。"""

from __future__ import annotations

import os

from . import portfolio
from .types import AppPackage

PACKAGE_REGISTRY: dict[str, AppPackage] = {pkg.name: pkg for pkg in (portfolio.package,)}
DEFAULT_PACKAGE = portfolio.package.name


def get_active_package() -> AppPackage:
    """``APP_ACTIVE_PACKAGE`` 选择启用的业务包，未设置时使用默认包。"""
    name = os.getenv("APP_ACTIVE_PACKAGE") or DEFAULT_PACKAGE
    if name not in PACKAGE_REGISTRY:
        raise RuntimeError(f"未知的业务包 '{name}'，可用选项：{', '.join(sorted(PACKAGE_REGISTRY))}")
    return PACKAGE_REGISTRY[name]


__all__ = ["PACKAGE_REGISTRY", "AppPackage", "get_active_package"]
