"""分类与项目相关的路由定义。"""

from __future__ import annotations

import mimetypes

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.packages.portfolio.api.v1.schemas.folders import (
    ActiveStateRequest,
    CategoryTreeResponse,
    FolderDeletionResponse,
    FolderListResponse,
    FolderRenameRequest,
    FolderReorderResponse,
    FolderResponse,
    FolderWithRelatedResponse,
    HeroImageUpdateRequest,
    ProjectCreateRequest,
    ProjectGroupResponse,
    ProjectWithImageListResponse,
    RelatedProjectsRequest,
    ReorderRequest,
)
from app.packages.portfolio.core.constants import HTTP_STATUS_CREATED, HTTP_STATUS_OK
from app.packages.portfolio.core.dependencies import get_asset_host, get_db
from app.packages.portfolio.core.responses import create_response
from app.packages.portfolio.services.asset_host import AssetHost
from app.packages.portfolio.services.folder_service import UNSET, folder_service
from app.packages.portfolio.services.media_service import media_service
from app.packages.portfolio.services.ordering_service import ordering_service

router = APIRouter(prefix="/folders", tags=["folders"])


@router.get("/categories", response_model=FolderListResponse)
def list_categories(db: Session = Depends(get_db)) -> FolderListResponse:
    """全部分类，按名称排序。"""
    return create_response("获取分类列表成功", folder_service.list_categories(db), HTTP_STATUS_OK)


@router.get("/tree", response_model=CategoryTreeResponse)
def get_category_tree(db: Session = Depends(get_db)) -> CategoryTreeResponse:
    """导航树：分类、项目与媒体数量。"""
    return create_response("获取目录树成功", folder_service.list_categories_with_projects(db), HTTP_STATUS_OK)


@router.get("/grouped", response_model=ProjectGroupResponse)
def list_projects_grouped(db: Session = Depends(get_db)) -> ProjectGroupResponse:
    return create_response("获取分组项目成功", folder_service.list_projects_grouped(db), HTTP_STATUS_OK)


@router.get("/projects", response_model=FolderListResponse)
def list_projects_for_selection(db: Session = Depends(get_db)) -> FolderListResponse:
    """全部项目，供相关项目选择。"""
    return create_response("获取项目列表成功", folder_service.list_projects_for_selection(db), HTTP_STATUS_OK)


@router.post("/projects", response_model=FolderResponse, status_code=HTTP_STATUS_CREATED)
def create_project(payload: ProjectCreateRequest, db: Session = Depends(get_db)) -> FolderResponse:
    project = folder_service.create_project(
        db,
        name=payload.name,
        parent_id=payload.parent_id,
        hero_image_url=payload.hero_image_url,
    )
    return create_response("创建项目成功", folder_service.serialize(project), HTTP_STATUS_CREATED)


@router.get("/categories/{category_id}/projects", response_model=FolderListResponse)
def list_category_projects(category_id: int, db: Session = Depends(get_db)) -> FolderListResponse:
    return create_response("获取项目列表成功", folder_service.list_projects(db, category_id), HTTP_STATUS_OK)


@router.get("/categories/{category_id}/projects/first-image", response_model=ProjectWithImageListResponse)
def list_category_projects_with_image(
    category_id: int,
    db: Session = Depends(get_db),
) -> ProjectWithImageListResponse:
    """分类下的项目及其首张图片，用于缩略图展示。"""
    data = folder_service.list_projects_with_first_image(db, category_id)
    return create_response("获取项目列表成功", data, HTTP_STATUS_OK)


@router.post("/reorder", response_model=FolderReorderResponse)
def reorder_projects(payload: ReorderRequest, db: Session = Depends(get_db)) -> FolderReorderResponse:
    """交换两个项目的位置，并返回重新加载后的同级列表。"""
    ordering_service.reorder_projects(db, dragged_id=payload.dragged_id, target_id=payload.target_id)
    parent_id = folder_service.get_folder(db, payload.dragged_id).parent_id
    data = {"parent_id": parent_id, "items": folder_service.list_projects(db, parent_id)}
    return create_response("调整顺序成功", data, HTTP_STATUS_OK)


@router.get("/{folder_id}", response_model=FolderResponse)
def get_folder(folder_id: int, db: Session = Depends(get_db)) -> FolderResponse:
    folder = folder_service.get_folder(db, folder_id)
    return create_response("获取目录成功", folder_service.serialize(folder), HTTP_STATUS_OK)


@router.get("/{folder_id}/related", response_model=FolderWithRelatedResponse)
def get_folder_with_related(folder_id: int, db: Session = Depends(get_db)) -> FolderWithRelatedResponse:
    return create_response("获取项目成功", folder_service.get_with_related(db, folder_id), HTTP_STATUS_OK)


@router.patch("/{folder_id}/name", response_model=FolderResponse)
def rename_folder(
    folder_id: int,
    payload: FolderRenameRequest,
    db: Session = Depends(get_db),
) -> FolderResponse:
    folder = folder_service.rename(db, folder_id=folder_id, new_name=payload.name)
    return create_response("重命名成功", folder_service.serialize(folder), HTTP_STATUS_OK)


@router.patch("/{folder_id}/hero-image", response_model=FolderResponse)
def update_hero_image(
    folder_id: int,
    payload: HeroImageUpdateRequest,
    db: Session = Depends(get_db),
) -> FolderResponse:
    folder = folder_service.set_hero_image(db, folder_id=folder_id, url=payload.url)
    return create_response("更新封面成功", folder_service.serialize(folder), HTTP_STATUS_OK)


@router.post("/{folder_id}/hero-image/upload", response_model=FolderResponse)
async def upload_hero_image(
    folder_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    asset_host: AssetHost = Depends(get_asset_host),
) -> FolderResponse:
    """上传封面图到资源托管并写入项目。"""
    content = await file.read()
    content_type = file.content_type or mimetypes.guess_type(file.filename or "")[0]
    folder = await run_in_threadpool(
        media_service.upload_hero_image,
        db,
        folder_id=folder_id,
        filename=file.filename or "",
        content=content,
        content_type=content_type,
        asset_host=asset_host,
    )
    return create_response("上传封面成功", folder_service.serialize(folder), HTTP_STATUS_OK)


@router.patch("/{folder_id}/active", response_model=FolderResponse)
def set_folder_active(
    folder_id: int,
    payload: ActiveStateRequest,
    db: Session = Depends(get_db),
) -> FolderResponse:
    folder = folder_service.set_active(db, folder_id=folder_id, is_active=payload.is_active)
    return create_response("更新项目状态成功", folder_service.serialize(folder), HTTP_STATUS_OK)


@router.patch("/{folder_id}/related", response_model=FolderWithRelatedResponse)
def update_related_projects(
    folder_id: int,
    payload: RelatedProjectsRequest,
    db: Session = Depends(get_db),
) -> FolderWithRelatedResponse:
    """只更新请求体中出现的槽位；显式 ``null`` 清空对应槽位。"""
    provided = payload.model_fields_set
    folder_service.set_related_projects(
        db,
        folder_id=folder_id,
        related_1=payload.related_project_1_id if "related_project_1_id" in provided else UNSET,
        related_2=payload.related_project_2_id if "related_project_2_id" in provided else UNSET,
    )
    return create_response("更新相关项目成功", folder_service.get_with_related(db, folder_id), HTTP_STATUS_OK)


@router.delete("/{folder_id}", response_model=FolderDeletionResponse)
def delete_folder(
    folder_id: int,
    db: Session = Depends(get_db),
    asset_host: AssetHost = Depends(get_asset_host),
) -> FolderDeletionResponse:
    """级联删除目录、子目录与媒体。"""
    summary = folder_service.delete(db, folder_id=folder_id, asset_host=asset_host)
    return create_response("删除目录成功", summary, HTTP_STATUS_OK)
