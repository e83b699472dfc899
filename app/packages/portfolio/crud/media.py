"""媒体 CRUD：媒体记录的增删改查与聚合查询。"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.packages.portfolio.core.constants import IMAGE_EXTENSIONS
from app.packages.portfolio.crud.base import CRUDBase
from app.packages.portfolio.models.media import Media

_IMAGE_URL_RE = re.compile(r"\.(%s)$" % "|".join(IMAGE_EXTENSIONS), re.IGNORECASE)


class CRUDMedia(CRUDBase[Media]):
    def insert_media(
        self,
        db: Session,
        *,
        id: str,
        folder_id: int,
        url: str,
        order_index: int,
        layout: str,
        asset_id: Optional[str] = None,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> Media:
        return self.create(
            db,
            {
                "id": id,
                "folder_id": folder_id,
                "url": url,
                "order_index": order_index,
                "layout": layout,
                "video_start_time": 0,
                "asset_id": asset_id,
                "filename": filename,
                "content_type": content_type,
            },
        )

    def _ordered(self, query):
        return query.order_by(Media.order_index.asc(), Media.create_time.asc(), Media.id.asc())

    def list_by_folder(self, db: Session, folder_id: int) -> list[Media]:
        return self._ordered(self.query(db).filter(Media.folder_id == folder_id)).all()

    def list_by_folder_ids(self, db: Session, folder_ids: Iterable[int]) -> list[Media]:
        tokens = {int(i) for i in folder_ids if i is not None}
        if not tokens:
            return []
        return self._ordered(self.query(db).filter(Media.folder_id.in_(tokens))).all()

    def count_by_folder(self, db: Session, folder_id: int) -> int:
        return db.query(func.count(Media.id)).filter(Media.folder_id == folder_id).scalar() or 0

    def next_order_index(self, db: Session, folder_id: int) -> int:
        current = db.query(func.max(Media.order_index)).filter(Media.folder_id == folder_id).scalar()
        return 0 if current is None else int(current) + 1

    def counts_by_folder(self, db: Session, folder_ids: Iterable[int]) -> dict[int, int]:
        """按目录分组统计媒体数量。"""
        tokens = {int(i) for i in folder_ids if i is not None}
        if not tokens:
            return {}
        rows = (
            db.query(Media.folder_id, func.count(Media.id))
            .filter(Media.folder_id.in_(tokens))
            .group_by(Media.folder_id)
            .all()
        )
        return {folder_id: int(count) for folder_id, count in rows}

    def first_image_urls(self, db: Session, folder_ids: Iterable[int]) -> dict[int, str]:
        """每个目录中排序最靠前的图片地址（按 URL 扩展名判定图片）。"""
        first: dict[int, str] = {}
        for item in self.list_by_folder_ids(db, folder_ids):
            if item.folder_id in first:
                continue
            if _IMAGE_URL_RE.search((item.url or "").split("?")[0]):
                first[item.folder_id] = item.url
        return first

    def update_order(self, db: Session, media_id: str, order_index: int, *, auto_commit: bool = True) -> Optional[Media]:
        return self.update_fields(db, media_id, {"order_index": order_index}, auto_commit=auto_commit)

    def update_layout(self, db: Session, media_id: str, layout: str) -> Optional[Media]:
        return self.update_fields(db, media_id, {"layout": layout})

    def update_video_start_time(self, db: Session, media_id: str, seconds: int) -> Optional[Media]:
        return self.update_fields(db, media_id, {"video_start_time": seconds})

    def delete_media(self, db: Session, media_id: str, *, auto_commit: bool = True) -> bool:
        return self.hard_delete(db, media_id, auto_commit=auto_commit)

    def delete_by_folder_ids(self, db: Session, folder_ids: Iterable[int], *, auto_commit: bool = True) -> int:
        tokens = {int(i) for i in folder_ids if i is not None}
        if not tokens:
            return 0
        affected = self.query(db).filter(Media.folder_id.in_(tokens)).delete(synchronize_session=False)
        if auto_commit:
            db.commit()
        return affected


media_crud = CRUDMedia(Media)
