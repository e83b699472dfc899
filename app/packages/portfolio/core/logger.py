"""日志配置：控制台彩色输出、按天滚动的文件日志，以及贯穿请求的 request_id。"""

import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Optional

from .config import Settings, get_settings

_request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_LINE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(request_id)s] %(message)s"
_MODULE = __name__


def set_request_id(request_id: Optional[str]) -> None:
    _request_id_ctx.set(request_id)


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id_ctx.get() or "-"
        return True


class _LocalTimeFormatter(logging.Formatter):
    """时间戳按配置时区渲染。"""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        stamp = datetime.fromtimestamp(record.created, get_settings().timezone_info)
        return stamp.strftime(datefmt) if datefmt else stamp.isoformat(sep=" ", timespec="milliseconds")


class ColorFormatter(_LocalTimeFormatter):
    """按级别着色；输出不是终端时自动关闭颜色。"""

    _PALETTE = {
        logging.DEBUG: "36",
        logging.INFO: "32",
        logging.WARNING: "33",
        logging.ERROR: "31",
        logging.CRITICAL: "1;41",
    }

    def __init__(self, fmt: str, datefmt: Optional[str] = None, use_colors: Optional[bool] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_colors = sys.stderr.isatty() if use_colors is None else use_colors

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        code = self._PALETTE.get(record.levelno) if self.use_colors else None
        return f"\033[{code}m{text}\033[0m" if code else text


class JsonFormatter(_LocalTimeFormatter):
    """每行一个 JSON 对象，便于日志平台采集。"""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", None),
            "msg": record.getMessage(),
            "where": f"{record.module}:{record.lineno}",
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _build_config(settings: Settings) -> dict[str, Any]:
    level = settings.log_level.upper()
    console_formatter = "json" if settings.log_json else "color"
    file_formatter = "json" if settings.log_json else "plain"
    handlers = ["console", "file"]

    loggers: dict[str, Any] = {
        name: {"handlers": handlers, "level": level, "propagate": False}
        for name in ("app", "uvicorn", "uvicorn.access")
    }
    # httpx 每个请求都会打 INFO，资源托管调用较多时会淹没业务日志
    loggers["httpx"] = {"handlers": handlers, "level": "WARNING", "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": f"{_MODULE}.RequestIdFilter"}},
        "formatters": {
            "color": {"()": f"{_MODULE}.ColorFormatter", "fmt": _LINE_FORMAT},
            "plain": {"()": f"{_MODULE}._LocalTimeFormatter", "fmt": _LINE_FORMAT},
            "json": {"()": f"{_MODULE}.JsonFormatter"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": console_formatter,
                "filters": ["request_id"],
            },
            "file": {
                "class": "logging.handlers.TimedRotatingFileHandler",
                "level": level,
                "formatter": file_formatter,
                "filters": ["request_id"],
                "filename": str(settings.log_file_path),
                "when": "midnight",
                "backupCount": 14,
                "encoding": "utf-8",
                "delay": True,
            },
        },
        "loggers": loggers,
        "root": {"handlers": handlers, "level": level},
    }


def setup_logging() -> None:
    """按当前配置初始化日志系统，应用启动时调用一次。"""
    settings = get_settings()
    settings.log_directory.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(_build_config(settings))


logger = logging.getLogger("app")
