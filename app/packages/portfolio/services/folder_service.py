"""目录业务逻辑：分类/项目的创建、重命名、封面、启停、相关项目与级联删除。"""

from __future__ import annotations

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.packages.portfolio.core.config import get_settings
from app.packages.portfolio.core.constants import (
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_CONFLICT,
    HTTP_STATUS_FORBIDDEN,
    HTTP_STATUS_INTERNAL_ERROR,
    HTTP_STATUS_NOT_FOUND,
)
from app.packages.portfolio.core.exceptions import AppException
from app.packages.portfolio.core.logger import logger
from app.packages.portfolio.core.timezone import format_datetime
from app.packages.portfolio.crud.folder import folder_crud
from app.packages.portfolio.crud.media import media_crud
from app.packages.portfolio.models.folder import Folder
from app.packages.portfolio.services.asset_host import AssetHost
from app.packages.portfolio.utils.text_utils import normalize_name, slugify


class _Unset:
    """标记“未传入”，与显式 ``None``（清空）区分。"""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


class FolderService:
    """封装目录相关的业务逻辑。"""

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def get_folder(self, db: Session, folder_id: int) -> Folder:
        folder = folder_crud.get(db, folder_id)
        if folder is None:
            raise AppException("目录不存在", HTTP_STATUS_NOT_FOUND)
        return folder

    def list_categories(self, db: Session) -> List[Dict[str, Any]]:
        return [self.serialize(item) for item in folder_crud.list_categories(db)]

    def list_projects(self, db: Session, category_id: int) -> List[Dict[str, Any]]:
        """分类下的项目，按排序值展示。"""
        self._require_category(db, category_id)
        return [self.serialize(item) for item in folder_crud.list_by_parent(db, category_id)]

    def list_projects_for_selection(self, db: Session) -> List[Dict[str, Any]]:
        return [self.serialize(item) for item in folder_crud.list_projects(db)]

    def list_categories_with_projects(self, db: Session) -> List[Dict[str, Any]]:
        """分类树：每个分类附带排序后的项目以及媒体总数。"""
        categories = folder_crud.list_categories(db)
        projects = folder_crud.list_by_parents(db, [c.id for c in categories])
        counts = media_crud.counts_by_folder(db, [p.id for p in projects])

        by_parent: Dict[int, List[Folder]] = defaultdict(list)
        for project in projects:
            by_parent[project.parent_id].append(project)

        tree = []
        for category in categories:
            children = by_parent.get(category.id, [])
            tree.append(
                {
                    "id": category.id,
                    "name": category.name,
                    "slug": category.slug,
                    "is_protected": category.is_protected,
                    "projects": [
                        {**self.serialize(child), "media_count": counts.get(child.id, 0)} for child in children
                    ],
                    "total_media_count": sum(counts.get(child.id, 0) for child in children),
                }
            )
        return tree

    def list_projects_grouped(self, db: Session) -> List[Dict[str, Any]]:
        """按分类分组的项目列表，供带筛选的项目选择器使用。"""
        categories = folder_crud.list_categories(db)
        projects = folder_crud.list_by_parents(db, [c.id for c in categories])
        by_parent: Dict[int, List[Folder]] = defaultdict(list)
        for project in projects:
            by_parent[project.parent_id].append(project)
        return [
            {
                "parent_id": category.id,
                "parent_name": category.name,
                "projects": [self.serialize(child) for child in by_parent.get(category.id, [])],
            }
            for category in categories
        ]

    def list_projects_with_first_image(self, db: Session, category_id: int) -> List[Dict[str, Any]]:
        self._require_category(db, category_id)
        projects = folder_crud.list_by_parent(db, category_id)
        first_images = media_crud.first_image_urls(db, [p.id for p in projects])
        return [{**self.serialize(p), "first_image_url": first_images.get(p.id)} for p in projects]

    def get_with_related(self, db: Session, folder_id: int) -> Dict[str, Any]:
        """项目及其解析后的相关项目；目标已不存在时解析为 ``None``。"""
        folder = self.get_folder(db, folder_id)
        related = {
            item.id: item
            for item in folder_crud.list_by_ids(db, [folder.related_project_1_id, folder.related_project_2_id])
        }
        r1 = related.get(folder.related_project_1_id)
        r2 = related.get(folder.related_project_2_id)
        return {
            **self.serialize(folder),
            "related_project_1": self.serialize(r1) if r1 else None,
            "related_project_2": self.serialize(r2) if r2 else None,
        }

    # ------------------------------------------------------------------
    # 创建
    # ------------------------------------------------------------------

    def create_category(self, db: Session, *, name: str, protected: bool = False, auto_commit: bool = True) -> Folder:
        normalized = normalize_name(name)
        slug = slugify(normalized)
        if not normalized or not slug:
            raise AppException("分类名称不能为空", HTTP_STATUS_BAD_REQUEST)
        if folder_crud.get_by_slug(db, slug, None) is not None:
            raise AppException("同名分类已存在", HTTP_STATUS_CONFLICT)
        category = folder_crud.insert_folder(
            db,
            name=normalized,
            slug=slug,
            parent_id=None,
            is_category=True,
            is_protected=protected,
            auto_commit=auto_commit,
        )
        logger.info("Category created: %s (protected=%s)", normalized, protected)
        return category

    def create_project(
        self,
        db: Session,
        *,
        name: str,
        parent_id: Optional[int],
        hero_image_url: Optional[str] = None,
    ) -> Folder:
        """在分类下新建项目；同一分类下 slug 重复时拒绝且不写入。"""
        normalized = normalize_name(name)
        if not normalized:
            raise AppException("项目名称不能为空", HTTP_STATUS_BAD_REQUEST)
        if parent_id is None:
            raise AppException("必须指定所属分类", HTTP_STATUS_BAD_REQUEST)
        slug = slugify(normalized)
        if not slug:
            raise AppException("项目名称必须包含字母或数字", HTTP_STATUS_BAD_REQUEST)
        self._require_category(db, parent_id)

        if folder_crud.get_by_slug(db, slug, parent_id) is not None:
            raise AppException("该分类下已存在同名项目", HTTP_STATUS_CONFLICT)

        try:
            project = folder_crud.insert_folder(
                db,
                name=normalized,
                slug=slug,
                parent_id=parent_id,
                is_category=False,
                hero_image_url=hero_image_url,
            )
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to create project %s", normalized)
            raise AppException("创建项目失败", HTTP_STATUS_INTERNAL_ERROR) from exc

        logger.info("Project created: %s (id=%s, category=%s)", project.name, project.id, parent_id)
        return project

    # ------------------------------------------------------------------
    # 更新
    # ------------------------------------------------------------------

    def rename(self, db: Session, *, folder_id: int, new_name: str) -> Folder:
        """重命名并重新生成 slug；受保护分类不可重命名。"""
        folder = self.get_folder(db, folder_id)
        if folder.is_protected:
            raise AppException("受保护的分类不可重命名", HTTP_STATUS_FORBIDDEN)
        normalized = normalize_name(new_name)
        slug = slugify(normalized)
        if not normalized or not slug:
            raise AppException("名称必须包含字母或数字", HTTP_STATUS_BAD_REQUEST)
        if get_settings().folder_rename_unique_slug:
            if folder_crud.get_by_slug(db, slug, folder.parent_id, exclude_id=folder.id) is not None:
                raise AppException("该分类下已存在同名项目", HTTP_STATUS_CONFLICT)

        updated = self._update(db, folder_id, {"name": normalized, "slug": slug}, "重命名失败")
        logger.info("Folder renamed: %s -> %s (id=%s)", folder.name, normalized, folder_id)
        return updated

    def set_hero_image(self, db: Session, *, folder_id: int, url: Optional[str]) -> Folder:
        self.get_folder(db, folder_id)
        value = (url or "").strip() or None
        return self._update(db, folder_id, {"hero_image_url": value}, "更新封面失败")

    def set_active(self, db: Session, *, folder_id: int, is_active: bool) -> Folder:
        """启用/停用项目，重复设置同一状态视为成功。"""
        folder = self.get_folder(db, folder_id)
        if folder.is_category:
            raise AppException("分类始终处于启用状态", HTTP_STATUS_BAD_REQUEST)
        if folder.is_active == bool(is_active):
            return folder
        return self._update(db, folder_id, {"is_active": bool(is_active)}, "更新项目状态失败")

    def set_related_projects(
        self,
        db: Session,
        *,
        folder_id: int,
        related_1: Any = UNSET,
        related_2: Any = UNSET,
    ) -> Folder:
        """更新相关项目；``UNSET`` 表示保持原值，``None`` 表示清空该槽位。"""
        folder = self.get_folder(db, folder_id)
        if folder.is_category:
            raise AppException("分类不支持设置相关项目", HTTP_STATUS_BAD_REQUEST)

        fields: Dict[str, Optional[int]] = {}
        if related_1 is not UNSET:
            fields["related_project_1_id"] = related_1
        if related_2 is not UNSET:
            fields["related_project_2_id"] = related_2
        if not fields:
            return folder

        final_1 = fields.get("related_project_1_id", folder.related_project_1_id)
        final_2 = fields.get("related_project_2_id", folder.related_project_2_id)
        if folder.id in (final_1, final_2):
            raise AppException("相关项目不能指向自身", HTTP_STATUS_BAD_REQUEST)
        if final_1 is not None and final_1 == final_2:
            raise AppException("两个相关项目不能相同", HTTP_STATUS_BAD_REQUEST)

        for target_id in {v for v in fields.values() if v is not None}:
            target = folder_crud.get(db, target_id)
            if target is None or target.is_category:
                raise AppException(f"相关项目不存在: {target_id}", HTTP_STATUS_BAD_REQUEST)

        return self._update(db, folder_id, fields, "更新相关项目失败")

    # ------------------------------------------------------------------
    # 删除
    # ------------------------------------------------------------------

    def delete(self, db: Session, *, folder_id: int, asset_host: AssetHost) -> Dict[str, Any]:
        """级联删除目录：子目录、媒体记录、远端资源，并清空指向它们的相关项目引用。

        受保护分类在任何副作用之前被拒绝。远端资源并行删除，单个失败只记录日志，
        不阻止数据库记录的删除。
        """
        folder = self.get_folder(db, folder_id)
        if folder.is_protected:
            raise AppException("受保护的分类不可删除", HTTP_STATUS_FORBIDDEN)

        subtree_ids = folder_crud.collect_subtree_ids(db, folder_id)
        media_items = media_crud.list_by_folder_ids(db, subtree_ids)
        asset_ids = [m.asset_id for m in media_items if m.asset_id]

        remote_failures = self._release_assets(asset_host, asset_ids)

        try:
            subtree = set(subtree_ids)
            for referrer in folder_crud.list_referrers(db, subtree_ids):
                if referrer.id in subtree:
                    continue
                if referrer.related_project_1_id in subtree:
                    referrer.related_project_1_id = None
                if referrer.related_project_2_id in subtree:
                    referrer.related_project_2_id = None
                db.add(referrer)
            db.flush()
            deleted_media = media_crud.delete_by_folder_ids(db, subtree_ids, auto_commit=False)
            # 先删最深层的子目录
            deleted_folders = folder_crud.delete_many(db, list(reversed(subtree_ids)), auto_commit=False)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to delete folder %s", folder_id)
            raise AppException("删除目录失败", HTTP_STATUS_INTERNAL_ERROR) from exc

        logger.info(
            "Folder deleted: %s (folders=%s, media=%s, remote_failures=%s)",
            folder_id,
            deleted_folders,
            deleted_media,
            len(remote_failures),
        )
        return {
            "id": folder_id,
            "deleted_folders": deleted_folders,
            "deleted_media": deleted_media,
            "remote_failures": remote_failures,
        }

    def _release_assets(self, asset_host: AssetHost, asset_ids: List[str]) -> List[str]:
        """并行删除远端资源，等待全部结束；返回删除失败的资源 ID。"""
        if not asset_ids:
            return []

        def _delete(asset_id: str) -> bool:
            try:
                return asset_host.delete(asset_id)
            except Exception:
                logger.warning("Remote asset delete raised: %s", asset_id, exc_info=True)
                return False

        workers = max(1, min(get_settings().cascade_delete_workers, len(asset_ids)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(_delete, asset_ids))

        failures = [asset_id for asset_id, ok in zip(asset_ids, outcomes) if not ok]
        for asset_id in failures:
            logger.warning("Remote asset not released during cascade delete: %s", asset_id)
        return failures

    # ------------------------------------------------------------------
    # 工具
    # ------------------------------------------------------------------

    def _require_category(self, db: Session, category_id: int) -> Folder:
        category = folder_crud.get(db, category_id)
        if category is None or not category.is_category:
            raise AppException("分类不存在", HTTP_STATUS_NOT_FOUND)
        return category

    def _update(self, db: Session, folder_id: int, fields: Dict[str, Any], error_msg: str) -> Folder:
        try:
            updated = folder_crud.update_fields(db, folder_id, fields)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to update folder %s: %s", folder_id, sorted(fields))
            raise AppException(error_msg, HTTP_STATUS_INTERNAL_ERROR) from exc
        if updated is None:
            raise AppException("目录不存在", HTTP_STATUS_NOT_FOUND)
        return updated

    @staticmethod
    def serialize(folder: Folder) -> Dict[str, Any]:
        return {
            "id": folder.id,
            "name": folder.name,
            "slug": folder.slug,
            "parent_id": folder.parent_id,
            "is_category": folder.is_category,
            "is_active": folder.is_active,
            "is_protected": folder.is_protected,
            "hero_image_url": folder.hero_image_url,
            "related_project_1_id": folder.related_project_1_id,
            "related_project_2_id": folder.related_project_2_id,
            "ordering": folder.ordering,
            "create_time": format_datetime(folder.create_time),
            "update_time": format_datetime(folder.update_time),
        }


folder_service = FolderService()
