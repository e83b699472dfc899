"""配置模块：加载 ``.env`` 文件与环境变量，并提供进程内缓存的 ``Settings``。"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

_TRUTHY = {"1", "true", "yes", "on"}


def _project_root() -> Path:
    """包含 ``app`` 目录的最近一级祖先目录。"""
    here = Path(__file__).resolve()
    return next((parent for parent in here.parents if (parent / "app").is_dir()), here.parent)


BASE_DIR = _project_root()


def _split_csv(raw: Optional[str]) -> list[str]:
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


def _env_files() -> list[tuple[Path, bool]]:
    """按优先级列出要加载的环境文件及是否覆盖已有变量。

    ``ENV_FILE`` 指定时只加载该文件；否则先加载 ``.env``，再叠加
    ``.env.<ENVIRONMENT>``（``DEBUG`` 为真且未指定环境时视为 ``development``）。
    """
    explicit = os.getenv("ENV_FILE")
    if explicit:
        return [(BASE_DIR / explicit, True)]

    files = [(BASE_DIR / ".env", False)]
    environment = os.getenv("ENVIRONMENT")
    if environment is None and (os.getenv("DEBUG") or "").strip().lower() in _TRUTHY:
        environment = "development"
    if environment:
        name = environment if environment.startswith(".env") else f".env.{environment}"
        files.append((BASE_DIR / name, True))
    return files


for _path, _override in _env_files():
    if _path.exists():
        load_dotenv(_path, override=_override, encoding="utf-8")


class Settings(BaseSettings):
    """应用配置；字段名对应的环境变量见各字段的 ``alias``。"""

    project_name: str = Field(default="Portfolio Media Admin", alias="PROJECT_NAME")
    api_v1_str: str = Field(default="/api/v1", alias="API_V1_STR")
    debug: bool = Field(default=False, alias="DEBUG")
    app_port: int = Field(default=8000, alias="APP_PORT")
    timezone: str = Field(default="UTC", alias="TIMEZONE")

    # 完整连接串优先；未配置时按分项拼接 PostgreSQL 连接串
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    database_host: str = Field(default="localhost", alias="DATABASE_HOST")
    database_port: int = Field(default=5432, alias="DATABASE_PORT")
    database_user: str = Field(default="postgres", alias="DATABASE_USER")
    database_password: str = Field(default="postgres", alias="DATABASE_PASSWORD")
    database_name: str = Field(default="portfolio", alias="DATABASE_NAME")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="log", alias="LOG_DIR")
    log_file_name: str = Field(default="app.log", alias="LOG_FILE_NAME")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # Contentful 资源托管
    contentful_access_token: Optional[str] = Field(default=None, alias="CONTENTFUL_ACCESS_TOKEN")
    contentful_space_id: Optional[str] = Field(default=None, alias="CONTENTFUL_SPACE_ID")
    contentful_environment_id: Optional[str] = Field(default=None, alias="CONTENTFUL_ENVIRONMENT_ID")
    contentful_locale: str = Field(default="en-US", alias="CONTENTFUL_LOCALE")
    contentful_upload_base_url: str = Field(
        default="https://upload.contentful.com", alias="CONTENTFUL_UPLOAD_BASE_URL"
    )
    contentful_api_base_url: str = Field(default="https://api.contentful.com", alias="CONTENTFUL_API_BASE_URL")
    contentful_process_settle_seconds: float = Field(default=2.0, alias="CONTENTFUL_PROCESS_SETTLE_SECONDS")
    contentful_timeout_seconds: float = Field(default=120.0, alias="CONTENTFUL_TIMEOUT_SECONDS")

    # 上传与目录业务参数
    upload_max_size_mb: float = Field(default=50, alias="UPLOAD_MAX_SIZE_MB")
    media_layout_cycle_raw: str = Field(default="horizontal,vertical,double", alias="MEDIA_LAYOUT_CYCLE")
    protected_categories_raw: str = Field(
        default="Editorial,Beauty,Portrait,Fashion Campaign,Motion,Advertising",
        alias="PROTECTED_CATEGORIES",
    )
    folder_rename_unique_slug: bool = Field(default=False, alias="FOLDER_RENAME_UNIQUE_SLUG")
    cascade_delete_workers: int = Field(default=4, alias="CASCADE_DELETE_WORKERS")

    model_config = SettingsConfigDict(extra="ignore")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @field_validator("media_layout_cycle_raw")
    @classmethod
    def _non_empty_cycle(cls, value: str) -> str:
        if not _split_csv(value):
            raise ValueError("MEDIA_LAYOUT_CYCLE must list at least one layout")
        return value

    @property
    def sql_database_url(self) -> str:
        """返回 SQLAlchemy 连接串，兼容托管平台常见的 ``postgres://`` 前缀。"""
        if self.database_url:
            uri = self.database_url.strip()
            if uri.startswith("postgres://"):
                uri = "postgresql+psycopg2://" + uri[len("postgres://"):]
            return uri
        return URL.create(
            "postgresql+psycopg2",
            username=self.database_user,
            password=self.database_password,
            host=self.database_host,
            port=self.database_port,
            database=self.database_name,
        ).render_as_string(hide_password=False)

    @property
    def log_directory(self) -> Path:
        """相对路径按项目根目录解析。"""
        path = Path(self.log_dir)
        return path if path.is_absolute() else BASE_DIR / path

    @property
    def log_file_path(self) -> Path:
        return self.log_directory / self.log_file_name

    @property
    def timezone_info(self) -> ZoneInfo:
        """返回当前配置对应的时区信息，无法解析时回退到 UTC。"""
        try:
            return ZoneInfo(self.timezone)
        except ZoneInfoNotFoundError:
            return ZoneInfo("UTC")

    @property
    def media_layout_cycle(self) -> tuple[str, ...]:
        """当前部署启用的布局枚举（按循环顺序）。"""
        return tuple(item.lower() for item in _split_csv(self.media_layout_cycle_raw))

    @property
    def protected_categories(self) -> list[str]:
        return _split_csv(self.protected_categories_raw)

    @property
    def upload_max_size_bytes(self) -> int:
        return int(self.upload_max_size_mb * 1024 * 1024)

    @property
    def contentful_configured(self) -> bool:
        return bool(
            self.contentful_access_token and self.contentful_space_id and self.contentful_environment_id
        )


@lru_cache
def get_settings() -> Settings:
    """进程内只解析一次环境变量；测试中可直接修改返回对象的字段。"""
    return Settings()
