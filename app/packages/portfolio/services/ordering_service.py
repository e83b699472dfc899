"""排序与布局引擎：媒体/项目的拖拽交换排序、布局循环与视频起播时间。

排序采用“成对交换”：被拖拽项与目标项互换排序值，两次更新在同一事务内提交。
当同一集合中存在重复排序值时，先按展示顺序稠密重编号（0..n-1）再交换，
保证交换后仍是合法的全序。调用方负责在操作后重新加载集合。
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, Optional, Sequence, TypeVar, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.packages.portfolio.core.config import get_settings
from app.packages.portfolio.core.constants import (
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_INTERNAL_ERROR,
    HTTP_STATUS_NOT_FOUND,
)
from app.packages.portfolio.core.exceptions import AppException
from app.packages.portfolio.core.logger import logger
from app.packages.portfolio.crud.folder import folder_crud
from app.packages.portfolio.crud.media import media_crud
from app.packages.portfolio.models.folder import Folder
from app.packages.portfolio.models.media import Media

T = TypeVar("T")

_DIGITS_RE = re.compile(r"^\d+$")


# ----------------------------------------------------------------------
# 纯函数
# ----------------------------------------------------------------------


def next_layout(current: Optional[str], layouts: Sequence[str]) -> str:
    """返回循环序列中的下一个布局；当前值不在序列内时回到第一个。"""
    if not layouts:
        raise ValueError("layout cycle must not be empty")
    try:
        index = list(layouts).index((current or "").lower())
    except ValueError:
        return layouts[0]
    return layouts[(index + 1) % len(layouts)]


def parse_start_time(minutes: Union[str, int, None], seconds: Union[str, int, None]) -> int:
    """将分、秒解析为总秒数；任一部分不是非负整数即抛出 ``ValueError``。"""

    def _part(value: Union[str, int, None], label: str) -> int:
        if isinstance(value, bool):
            raise ValueError(f"{label} must be a non-negative integer")
        if isinstance(value, int):
            if value < 0:
                raise ValueError(f"{label} must be a non-negative integer")
            return value
        text = (value or "").strip() if isinstance(value, str) else ""
        if not _DIGITS_RE.match(text):
            raise ValueError(f"{label} must be a non-negative integer")
        return int(text)

    return _part(minutes, "minutes") * 60 + _part(seconds, "seconds")


def sort_for_display(items: Iterable[T], rank: Callable[[T], int], tie_breaker: Callable[[T], object]) -> list[T]:
    """按排序值升序排列，排序值相同时用 ``tie_breaker`` 保持稳定。"""
    return sorted(items, key=lambda item: (rank(item), tie_breaker(item)))


def sort_media(items: Iterable[Media]) -> list[Media]:
    return sort_for_display(
        items,
        lambda m: m.order_index,
        lambda m: (m.create_time.timestamp() if m.create_time else 0.0, m.id),
    )


def sort_folders(items: Iterable[Folder]) -> list[Folder]:
    return sort_for_display(items, lambda f: f.ordering, lambda f: ((f.name or "").lower(), f.id))


def has_duplicate_ranks(ranks: Iterable[int]) -> bool:
    seen: set[int] = set()
    for value in ranks:
        if value in seen:
            return True
        seen.add(value)
    return False


# ----------------------------------------------------------------------
# 服务
# ----------------------------------------------------------------------


class OrderingService:
    """封装媒体与项目的排序、布局相关写操作。"""

    def reorder_media(self, db: Session, *, dragged_id: str, target_id: str) -> None:
        """交换同一项目内两条媒体的 ``order_index``。"""
        if dragged_id == target_id:
            return
        dragged = media_crud.get(db, dragged_id)
        target = media_crud.get(db, target_id)
        if dragged is None or target is None:
            raise AppException("媒体不存在", HTTP_STATUS_NOT_FOUND)
        if dragged.folder_id != target.folder_id:
            raise AppException("只能在同一项目内调整媒体顺序", HTTP_STATUS_BAD_REQUEST)

        siblings = media_crud.list_by_folder(db, dragged.folder_id)
        self._swap(
            db,
            dragged,
            target,
            siblings=sort_media(siblings),
            attr="order_index",
            write=lambda item, rank: media_crud.update_order(db, item.id, rank, auto_commit=False),
        )
        logger.info("Media reordered: %s <-> %s (folder %s)", dragged_id, target_id, dragged.folder_id)

    def reorder_projects(self, db: Session, *, dragged_id: int, target_id: int) -> None:
        """交换同一分类下两个项目的 ``ordering``。"""
        if dragged_id == target_id:
            return
        dragged = folder_crud.get(db, dragged_id)
        target = folder_crud.get(db, target_id)
        if dragged is None or target is None:
            raise AppException("项目不存在", HTTP_STATUS_NOT_FOUND)
        if dragged.is_category or target.is_category:
            raise AppException("分类不参与排序", HTTP_STATUS_BAD_REQUEST)
        if dragged.parent_id != target.parent_id:
            raise AppException("只能在同一分类内调整项目顺序", HTTP_STATUS_BAD_REQUEST)

        siblings = [f for f in folder_crud.list_by_parent(db, dragged.parent_id) if not f.is_category]
        self._swap(
            db,
            dragged,
            target,
            siblings=sort_folders(siblings),
            attr="ordering",
            write=lambda item, rank: folder_crud.update_fields(db, item.id, {"ordering": rank}, auto_commit=False),
        )
        logger.info("Projects reordered: %s <-> %s (category %s)", dragged_id, target_id, dragged.parent_id)

    def set_project_ordering(self, db: Session, *, project_id: int, ordering: int) -> Folder:
        """直接写入绝对排序值（对外接口只暴露交换排序）。"""
        if ordering < 0:
            raise AppException("排序值不能为负数", HTTP_STATUS_BAD_REQUEST)
        try:
            project = folder_crud.update_fields(db, project_id, {"ordering": ordering})
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to update project ordering: %s", project_id)
            raise AppException("更新项目排序失败", HTTP_STATUS_INTERNAL_ERROR) from exc
        if project is None:
            raise AppException("项目不存在", HTTP_STATUS_NOT_FOUND)
        return project

    def cycle_layout(self, db: Session, *, media_id: str, layouts: Optional[Sequence[str]] = None) -> Media:
        """把媒体布局切换为循环序列中的下一个值。"""
        cycle = tuple(layouts) if layouts else get_settings().media_layout_cycle
        media = media_crud.get(db, media_id)
        if media is None:
            raise AppException("媒体不存在", HTTP_STATUS_NOT_FOUND)
        new_layout = next_layout(media.layout, cycle)
        try:
            updated = media_crud.update_layout(db, media_id, new_layout)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to update media layout: %s", media_id)
            raise AppException("更新布局失败", HTTP_STATUS_INTERNAL_ERROR) from exc
        if updated is None:
            raise AppException("媒体不存在", HTTP_STATUS_NOT_FOUND)
        logger.debug("Media layout cycled: %s %s -> %s", media_id, media.layout, new_layout)
        return updated

    def set_video_start_time(
        self,
        db: Session,
        *,
        media_id: str,
        minutes: Union[str, int, None],
        seconds: Union[str, int, None],
    ) -> Media:
        """校验分、秒后写入总秒数；输入非法时不触发任何数据库写入。"""
        try:
            total = parse_start_time(minutes, seconds)
        except ValueError as exc:
            raise AppException(f"起播时间格式错误：{exc}", HTTP_STATUS_BAD_REQUEST) from exc

        try:
            updated = media_crud.update_video_start_time(db, media_id, total)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to update video start time: %s", media_id)
            raise AppException("更新起播时间失败", HTTP_STATUS_INTERNAL_ERROR) from exc
        if updated is None:
            raise AppException("媒体不存在", HTTP_STATUS_NOT_FOUND)
        return updated

    # ------------------------------------------------------------------
    # 内部：事务内交换
    # ------------------------------------------------------------------

    def _swap(
        self,
        db: Session,
        dragged,
        target,
        *,
        siblings: list,
        attr: str,
        write: Callable[[object, int], object],
    ) -> None:
        """所有写入只 flush，最后统一提交。"""
        pair = (dragged.id, target.id)
        try:
            if has_duplicate_ranks(getattr(item, attr) for item in siblings):
                logger.warning("Duplicate %s values found, renumbering %d items", attr, len(siblings))
                for position, item in enumerate(siblings):
                    write(item, position)
            dragged_rank = getattr(dragged, attr)
            target_rank = getattr(target, attr)
            write(dragged, target_rank)
            write(target, dragged_rank)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to swap %s between %s and %s", attr, *pair)
            raise AppException("调整顺序失败", HTTP_STATUS_INTERNAL_ERROR) from exc


ordering_service = OrderingService()
