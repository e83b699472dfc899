"""作品集媒体管理业务包：分类、项目与媒体的后台管理。"""

from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.packages.types import AppPackage

from .api.v1 import api_router
from .core.config import get_settings
from .core.dependencies import close_asset_host
from .core.exceptions import generic_exception_handler, http_exception_handler, validation_exception_handler
from .core.logger import logger, setup_logging
from .db.init_db import init_db

package = AppPackage(
    name="portfolio",
    router=api_router,
    settings=get_settings,
    configure_logging=setup_logging,
    logger=logger,
    startup=init_db,
    shutdown=close_asset_host,
    exception_handlers={
        StarletteHTTPException: http_exception_handler,
        RequestValidationError: validation_exception_handler,
        Exception: generic_exception_handler,
    },
)

__all__ = ["package"]
