"""依赖注入模块：数据库会话与资源托管客户端。"""

from collections.abc import Generator
from functools import lru_cache

from sqlalchemy.orm import Session

from app.packages.portfolio.db.session import SessionLocal
from app.packages.portfolio.services.asset_host import AssetHost, ContentfulAssetHost


def get_db() -> Generator[Session, None, None]:
    """生成一个数据库会话，并在请求结束后自动关闭。"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache
def _contentful_host() -> ContentfulAssetHost:
    return ContentfulAssetHost()


def get_asset_host() -> AssetHost:
    """返回进程内共享的资源托管客户端；测试中通过 ``dependency_overrides`` 替换。"""
    return _contentful_host()


def close_asset_host() -> None:
    """关闭共享客户端的连接池（仅在已创建时）。"""
    if _contentful_host.cache_info().currsize:
        _contentful_host().close()
        _contentful_host.cache_clear()
