"""时区工具方法：序列化记录时间戳时统一换算到配置时区。"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from app.packages.portfolio.core.config import get_settings


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    """转换为配置时区的 ISO-8601 字符串；SQLite 读出的无时区值按 UTC 处理。"""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(get_settings().timezone_info).isoformat(timespec="seconds")
