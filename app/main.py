"""应用入口：按启用的业务包组装 FastAPI 实例。"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.middleware.request_id import RequestIdMiddleware
from app.packages import get_active_package
from app.packages.types import AppPackage


def create_app(package: AppPackage) -> FastAPI:
    settings = package.settings()
    logger = package.logger

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        package.startup()
        logger.info("SUCCESS - %s running at http://127.0.0.1:%s", package.name, settings.app_port)
        try:
            yield
        finally:
            package.shutdown()
            logger.info("%s stopped", package.name)

    application = FastAPI(title=settings.project_name, debug=settings.debug, lifespan=lifespan)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    # 最后添加的中间件最先执行，保证 CORS 与业务日志都能拿到 request_id
    application.add_middleware(RequestIdMiddleware)

    for exc_type, handler in package.exception_handlers.items():
        application.add_exception_handler(exc_type, handler)

    @application.get("/health")
    async def health_check() -> dict:
        """探活接口。"""
        return {"msg": "OK", "data": {"status": "healthy", "package": package.name}, "code": 200}

    application.include_router(package.router, prefix=settings.api_v1_str)
    return application


active_package = get_active_package()
active_package.configure_logging()
app = create_app(active_package)
