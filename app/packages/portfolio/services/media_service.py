"""媒体业务逻辑：批量上传、封面上传、列表与删除。"""

from __future__ import annotations

import time
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.packages.portfolio.core.config import get_settings
from app.packages.portfolio.core.constants import (
    HTTP_STATUS_BAD_GATEWAY,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_INTERNAL_ERROR,
    HTTP_STATUS_NOT_FOUND,
    HTTP_STATUS_PAYLOAD_TOO_LARGE,
)
from app.packages.portfolio.core.enums import MediaLayoutEnum, ResultStatusEnum
from app.packages.portfolio.core.exceptions import AppException, AssetHostError
from app.packages.portfolio.core.logger import logger
from app.packages.portfolio.core.timezone import format_datetime
from app.packages.portfolio.crud.media import media_crud
from app.packages.portfolio.models.media import Media
from app.packages.portfolio.services.asset_host import AssetHost
from app.packages.portfolio.services.folder_service import folder_service
from app.packages.portfolio.utils.text_utils import asset_filename, file_extension

# (原始文件名, 文件内容, Content-Type)
UploadItem = Tuple[str, bytes, Optional[str]]


class MediaService:
    """封装媒体相关的业务逻辑。"""

    def get_media(self, db: Session, media_id: str) -> Media:
        media = media_crud.get(db, media_id)
        if media is None:
            raise AppException("媒体不存在", HTTP_STATUS_NOT_FOUND)
        return media

    def list_media(self, db: Session, folder_id: int) -> Dict[str, Any]:
        folder = folder_service.get_folder(db, folder_id)
        items = media_crud.list_by_folder(db, folder_id)
        return {
            "folder_id": folder.id,
            "folder_name": folder.name,
            "items": [self.serialize(item) for item in items],
        }

    def upload_files(
        self,
        db: Session,
        *,
        folder_id: int,
        files: Sequence[UploadItem],
        asset_host: AssetHost,
        layout: Optional[str] = None,
    ) -> Dict[str, Any]:
        """逐个上传文件并登记媒体记录。

        单个文件失败不影响后续文件；每个文件都会在结果中给出成功或失败原因。
        新媒体追加在末尾：排序值从当前最大值加一开始，按批内顺序递增。
        """
        folder = folder_service.get_folder(db, folder_id)
        if folder.is_category:
            raise AppException("只能向项目上传媒体", HTTP_STATUS_BAD_REQUEST)
        if not files:
            raise AppException("请选择要上传的文件", HTTP_STATUS_BAD_REQUEST)

        layout_value = self._resolve_layout(layout)
        max_bytes = get_settings().upload_max_size_bytes
        next_index = media_crud.next_order_index(db, folder_id)

        results: List[Dict[str, Any]] = []
        for original_name, content, content_type in files:
            display_name = original_name or "file"
            if len(content) > max_bytes:
                results.append(
                    self._failure(
                        display_name,
                        f"文件过大（{len(content) / (1024 * 1024):.2f} MB），上限为 {get_settings().upload_max_size_mb:g} MB",
                        HTTP_STATUS_PAYLOAD_TOO_LARGE,
                    )
                )
                continue

            media_id = uuid.uuid4().hex
            try:
                uploaded = asset_host.upload(content, asset_filename(media_id, display_name), content_type)
            except AssetHostError as exc:
                logger.warning("Upload failed for %s: %s", display_name, exc)
                code = HTTP_STATUS_PAYLOAD_TOO_LARGE if exc.status_code in (413, 422) else HTTP_STATUS_BAD_GATEWAY
                results.append(self._failure(display_name, str(exc), code))
                continue

            try:
                media = media_crud.insert_media(
                    db,
                    id=media_id,
                    folder_id=folder_id,
                    url=uploaded.public_url,
                    order_index=next_index,
                    layout=layout_value,
                    asset_id=uploaded.asset_id,
                    filename=display_name,
                    content_type=uploaded.content_type,
                )
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Failed to save media record for %s", display_name)
                # 记录落库失败时释放已上传的远端资源
                asset_host.delete(uploaded.asset_id)
                results.append(self._failure(display_name, "保存媒体记录失败", HTTP_STATUS_INTERNAL_ERROR))
                continue

            next_index += 1
            results.append(
                {
                    "filename": display_name,
                    "status": ResultStatusEnum.SUCCESS.value,
                    "message": None,
                    "code": None,
                    "media": self.serialize(media),
                }
            )

        succeeded = sum(1 for r in results if r["status"] == ResultStatusEnum.SUCCESS.value)
        logger.info(
            "Upload batch finished for folder %s: %s succeeded, %s failed",
            folder_id,
            succeeded,
            len(results) - succeeded,
        )
        return {"succeeded": succeeded, "failed": len(results) - succeeded, "results": results}

    def upload_hero_image(
        self,
        db: Session,
        *,
        folder_id: int,
        filename: str,
        content: bytes,
        content_type: Optional[str],
        asset_host: AssetHost,
    ):
        """上传封面图并写入项目的 ``hero_image_url``。"""
        folder_service.get_folder(db, folder_id)
        if len(content) > get_settings().upload_max_size_bytes:
            raise AppException(
                f"文件过大，上限为 {get_settings().upload_max_size_mb:g} MB", HTTP_STATUS_PAYLOAD_TOO_LARGE
            )
        hero_name = f"hero-image-{int(time.time() * 1000)}.{file_extension(filename)}"
        try:
            uploaded = asset_host.upload(content, hero_name, content_type)
        except AssetHostError as exc:
            logger.warning("Hero image upload failed for folder %s: %s", folder_id, exc)
            code = HTTP_STATUS_PAYLOAD_TOO_LARGE if exc.status_code in (413, 422) else HTTP_STATUS_BAD_GATEWAY
            raise AppException(f"封面上传失败：{exc}", code) from exc
        return folder_service.set_hero_image(db, folder_id=folder_id, url=uploaded.public_url)

    def delete_media(self, db: Session, *, media_id: str, asset_host: AssetHost) -> Dict[str, Any]:
        """删除媒体记录；远端资源尽力释放，失败只记录日志。"""
        media = media_crud.get(db, media_id)
        if media is None:
            raise AppException("媒体不存在", HTTP_STATUS_NOT_FOUND)

        remote_released = True
        if media.asset_id:
            try:
                remote_released = asset_host.delete(media.asset_id)
            except Exception:
                logger.warning("Remote asset delete raised: %s", media.asset_id, exc_info=True)
                remote_released = False
            if not remote_released:
                logger.warning("Remote asset not released for media %s: %s", media_id, media.asset_id)

        try:
            media_crud.delete_media(db, media_id)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to delete media %s", media_id)
            raise AppException("删除媒体失败", HTTP_STATUS_INTERNAL_ERROR) from exc

        logger.info("Media deleted: %s (folder %s)", media_id, media.folder_id)
        return {"id": media_id, "folder_id": media.folder_id, "remote_released": remote_released}

    # ------------------------------------------------------------------
    # 工具
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve_layout(layout: Optional[str]) -> str:
        cycle = get_settings().media_layout_cycle
        if not layout:
            return cycle[0] if cycle else MediaLayoutEnum.HORIZONTAL.value
        value = layout.strip().lower()
        if value not in cycle:
            raise AppException(f"不支持的布局：{layout}", HTTP_STATUS_BAD_REQUEST)
        return value

    @staticmethod
    def _failure(filename: str, message: str, code: int) -> Dict[str, Any]:
        return {
            "filename": filename,
            "status": ResultStatusEnum.FAILURE.value,
            "message": message,
            "code": code,
            "media": None,
        }

    @staticmethod
    def serialize(media: Media) -> Dict[str, Any]:
        return {
            "id": media.id,
            "folder_id": media.folder_id,
            "url": media.url,
            "asset_id": media.asset_id,
            "filename": media.filename,
            "content_type": media.content_type,
            "order_index": media.order_index,
            "layout": media.layout,
            "video_start_time": media.video_start_time,
            "create_time": format_datetime(media.create_time),
            "update_time": format_datetime(media.update_time),
        }


media_service = MediaService()
