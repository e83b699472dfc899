"""异常定义与全局异常处理：所有错误都以 ``{"msg", "data", "code"}`` 结构返回。"""

from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.packages.portfolio.core.logger import logger
from app.packages.portfolio.core.responses import create_response


class AppException(HTTPException):
    """业务异常：``code`` 同时作为 HTTP 状态码与响应体中的 ``code``。"""

    def __init__(self, msg: str, code: int = status.HTTP_400_BAD_REQUEST, data: Any = None) -> None:
        super().__init__(status_code=code, detail=msg)
        self.data = data


class AssetHostError(Exception):
    """远端资源托管（上传/发布/删除）失败；``status_code`` 为远端返回的状态码（如有）。"""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # pragma: no cover - framework glue
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
    body = create_response(str(exc.detail), getattr(exc, "data", None), exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=body)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # pragma: no cover - framework glue
    """未捕获异常统一记录并返回 500。"""
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=code, content=create_response("服务器内部错误", None, code))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # pragma: no cover - framework glue
    """请求体/参数校验失败统一返回 422，``data`` 为逐项错误明细。"""
    code = status.HTTP_422_UNPROCESSABLE_ENTITY
    errors = jsonable_encoder(
        exc.errors(),
        custom_encoder={Exception: str, bytes: lambda raw: raw.decode("utf-8", "replace")},
    )
    return JSONResponse(status_code=code, content=create_response("请求参数验证失败", errors, code))
