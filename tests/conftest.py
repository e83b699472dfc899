"""测试夹具：为 pytest 提供数据库、资源托管替身与客户端的共享配置。"""

import os
import tempfile
from typing import Generator, Optional

TEST_DB_PATH = os.path.join(os.path.dirname(__file__), "test.db")
TEST_DATABASE_URL = f"sqlite:///{TEST_DB_PATH}"

# 必须在导入应用之前设置，保证模块级引擎与配置指向测试环境
os.environ.setdefault("ENV_FILE", ".env.test")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["LOG_DIR"] = os.path.join(tempfile.gettempdir(), "portfolio-test-logs")
os.environ["CONTENTFUL_PROCESS_SETTLE_SECONDS"] = "0"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from app.main import app  # noqa: E402
from app.packages.portfolio.core.dependencies import get_asset_host, get_db  # noqa: E402
from app.packages.portfolio.core.exceptions import AssetHostError  # noqa: E402
from app.packages.portfolio.db import session as db_session  # noqa: E402
from app.packages.portfolio.db.init_db import init_db  # noqa: E402
from app.packages.portfolio.models import Base  # noqa: E402
from app.packages.portfolio.services.asset_host import AssetHost, UploadedAsset  # noqa: E402


class FakeAssetHost(AssetHost):
    """内存版资源托管：记录上传/删除调用，可按文件名或资源 ID 注入失败。"""

    def __init__(self) -> None:
        self.uploads: list[tuple[str, int, Optional[str]]] = []
        self.deleted: list[str] = []
        self.fail_uploads: dict[str, AssetHostError] = {}
        self.fail_deletes: set[str] = set()
        self._counter = 0

    def upload(self, data: bytes, filename: str, content_type: Optional[str] = None) -> UploadedAsset:
        for marker, error in self.fail_uploads.items():
            if marker in filename:
                raise error
        self._counter += 1
        asset_id = f"asset-{self._counter}"
        self.uploads.append((filename, len(data), content_type))
        return UploadedAsset(
            asset_id=asset_id,
            public_url=f"https://assets.example.test/{asset_id}/{filename}",
            filename=filename,
            content_type=content_type or "application/octet-stream",
        )

    def delete(self, asset_id: str) -> bool:
        if asset_id in self.fail_deletes:
            return False
        self.deleted.append(asset_id)
        return True


@pytest.fixture(scope="session", autouse=True)
def setup_test_database() -> Generator[None, None, None]:
    """创建隔离的 SQLite 测试数据库，并在会话结束后清理。"""
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)

    engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db_session.engine = engine
    db_session.SessionLocal = TestingSessionLocal

    Base.metadata.create_all(bind=engine)
    yield

    engine.dispose()
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)


@pytest.fixture(autouse=True)
def reset_tables() -> Generator[None, None, None]:
    """每个用例前清空数据并重新补齐受保护分类。"""
    Base.metadata.drop_all(bind=db_session.engine)
    Base.metadata.create_all(bind=db_session.engine)
    init_db()
    yield


@pytest.fixture()
def db_session_fixture() -> Generator[Session, None, None]:
    """提供给测试用例使用的数据库会话。"""
    session = db_session.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def asset_host() -> FakeAssetHost:
    return FakeAssetHost()


@pytest.fixture()
def client(asset_host: FakeAssetHost):
    """构建 FastAPI TestClient，并注入测试专用的数据库与资源托管依赖。"""
    def override_get_db() -> Generator[Session, None, None]:
        session = db_session.SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_asset_host] = lambda: asset_host

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
