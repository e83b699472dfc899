"""媒体相关的路由定义。"""

from __future__ import annotations

import mimetypes
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.packages.portfolio.api.v1.schemas.media import (
    MediaDeletionResponse,
    MediaListResponse,
    MediaReorderRequest,
    MediaReorderResponse,
    MediaResponse,
    UploadBatchResponse,
    VideoStartTimeRequest,
)
from app.packages.portfolio.core.constants import HTTP_STATUS_OK
from app.packages.portfolio.core.dependencies import get_asset_host, get_db
from app.packages.portfolio.core.responses import create_response
from app.packages.portfolio.services.asset_host import AssetHost
from app.packages.portfolio.services.media_service import media_service
from app.packages.portfolio.services.ordering_service import ordering_service

router = APIRouter(prefix="/media", tags=["media"])


@router.get("/folders/{folder_id}", response_model=MediaListResponse)
def list_media(folder_id: int, db: Session = Depends(get_db)) -> MediaListResponse:
    """项目下的媒体，按展示顺序。"""
    return create_response("获取媒体列表成功", media_service.list_media(db, folder_id), HTTP_STATUS_OK)


@router.post("/folders/{folder_id}", response_model=UploadBatchResponse)
async def upload_media(
    folder_id: int,
    files: list[UploadFile] = File(...),
    layout: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    asset_host: AssetHost = Depends(get_asset_host),
) -> UploadBatchResponse:
    """批量上传；逐个文件返回结果，随后附带重新加载的媒体列表。"""
    materials: list[tuple[str, bytes, Optional[str]]] = []
    for up in files:
        content = await up.read()
        content_type = up.content_type or mimetypes.guess_type(up.filename or "")[0]
        materials.append((up.filename or "", content, content_type))

    outcome = await run_in_threadpool(
        media_service.upload_files,
        db,
        folder_id=folder_id,
        files=materials,
        asset_host=asset_host,
        layout=layout,
    )
    listing = await run_in_threadpool(media_service.list_media, db, folder_id)
    outcome["items"] = listing["items"]
    msg = "上传完成" if outcome["failed"] == 0 else f"上传完成，{outcome['failed']} 个文件失败"
    return create_response(msg, outcome, HTTP_STATUS_OK)


@router.post("/reorder", response_model=MediaReorderResponse)
def reorder_media(payload: MediaReorderRequest, db: Session = Depends(get_db)) -> MediaReorderResponse:
    """交换两条媒体的位置，返回重新加载后的列表。"""
    ordering_service.reorder_media(db, dragged_id=payload.dragged_id, target_id=payload.target_id)
    folder_id = media_service.get_media(db, payload.dragged_id).folder_id
    return create_response("调整顺序成功", media_service.list_media(db, folder_id), HTTP_STATUS_OK)


@router.post("/{media_id}/layout/cycle", response_model=MediaResponse)
def cycle_media_layout(media_id: str, db: Session = Depends(get_db)) -> MediaResponse:
    media = ordering_service.cycle_layout(db, media_id=media_id)
    return create_response("切换布局成功", media_service.serialize(media), HTTP_STATUS_OK)


@router.put("/{media_id}/video-start-time", response_model=MediaResponse)
def update_video_start_time(
    media_id: str,
    payload: VideoStartTimeRequest,
    db: Session = Depends(get_db),
) -> MediaResponse:
    media = ordering_service.set_video_start_time(
        db,
        media_id=media_id,
        minutes=payload.minutes,
        seconds=payload.seconds,
    )
    return create_response("更新起播时间成功", media_service.serialize(media), HTTP_STATUS_OK)


@router.delete("/{media_id}", response_model=MediaDeletionResponse)
def delete_media(
    media_id: str,
    db: Session = Depends(get_db),
    asset_host: AssetHost = Depends(get_asset_host),
) -> MediaDeletionResponse:
    result = media_service.delete_media(db, media_id=media_id, asset_host=asset_host)
    result["items"] = media_service.list_media(db, result["folder_id"])["items"]
    return create_response("删除媒体成功", result, HTTP_STATUS_OK)
