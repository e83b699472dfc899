"""API v1 汇总路由：统一挂载所有版本化的子路由。"""

from fastapi import APIRouter

from app.packages.portfolio.api.v1.endpoints import folders, media

api_router = APIRouter()
api_router.include_router(folders.router)
api_router.include_router(media.router)
