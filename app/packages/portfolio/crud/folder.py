"""目录 CRUD：分类、项目及其排序、弱引用相关的数据库操作。"""

from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.packages.portfolio.crud.base import CRUDBase
from app.packages.portfolio.models.folder import Folder


class CRUDFolder(CRUDBase[Folder]):
    """提供目录实体的便捷查询方法。"""

    def insert_folder(
        self,
        db: Session,
        *,
        name: str,
        slug: str,
        parent_id: Optional[int],
        is_category: bool = False,
        hero_image_url: Optional[str] = None,
        is_protected: bool = False,
        auto_commit: bool = True,
    ) -> Folder:
        """新建目录；项目追加到同级末尾，分类固定为 0。"""
        ordering = 0 if is_category else self.next_ordering(db, parent_id)
        return self.create(
            db,
            {
                "name": name,
                "slug": slug,
                "parent_id": parent_id,
                "is_category": is_category,
                "is_active": True,
                "is_protected": is_protected,
                "hero_image_url": hero_image_url,
                "ordering": ordering,
            },
            auto_commit=auto_commit,
        )

    def next_ordering(self, db: Session, parent_id: Optional[int]) -> int:
        current = (
            db.query(func.max(Folder.ordering))
            .filter(Folder.parent_id == parent_id, Folder.is_category.is_(False))
            .scalar()
        )
        return 0 if current is None else int(current) + 1

    def list_categories(self, db: Session) -> list[Folder]:
        return (
            self.query(db)
            .filter(Folder.parent_id.is_(None), Folder.is_category.is_(True))
            .order_by(Folder.name.asc(), Folder.id.asc())
            .all()
        )

    def list_by_parent(self, db: Session, parent_id: int) -> list[Folder]:
        """同级目录，按 `ordering -> name -> id` 排序。"""
        return (
            self.query(db)
            .filter(Folder.parent_id == parent_id)
            .order_by(Folder.ordering.asc(), Folder.name.asc(), Folder.id.asc())
            .all()
        )

    def list_by_parents(self, db: Session, parent_ids: Iterable[int]) -> list[Folder]:
        tokens = {int(i) for i in parent_ids if i is not None}
        if not tokens:
            return []
        return (
            self.query(db)
            .filter(Folder.parent_id.in_(tokens), Folder.is_category.is_(False))
            .order_by(Folder.ordering.asc(), Folder.name.asc(), Folder.id.asc())
            .all()
        )

    def list_projects(self, db: Session) -> list[Folder]:
        """全部项目，按名称排序，供“相关项目”下拉选择。"""
        return (
            self.query(db)
            .filter(Folder.is_category.is_(False))
            .order_by(Folder.name.asc(), Folder.id.asc())
            .all()
        )

    def list_by_ids(self, db: Session, ids: Iterable[int]) -> list[Folder]:
        tokens = {int(i) for i in ids if i is not None}
        if not tokens:
            return []
        return self.query(db).filter(Folder.id.in_(tokens)).all()

    def get_by_slug(
        self,
        db: Session,
        slug: str,
        parent_id: Optional[int],
        *,
        exclude_id: Optional[int] = None,
    ) -> Optional[Folder]:
        query = self.query(db).filter(Folder.slug == slug)
        if parent_id is None:
            query = query.filter(Folder.parent_id.is_(None))
        else:
            query = query.filter(Folder.parent_id == parent_id)
        if exclude_id is not None:
            query = query.filter(Folder.id != exclude_id)
        return query.first()

    def get_category_by_name(self, db: Session, name: str) -> Optional[Folder]:
        return (
            self.query(db)
            .filter(Folder.parent_id.is_(None), Folder.name == name)
            .first()
        )

    def delete_folder(self, db: Session, folder_id: int, *, auto_commit: bool = True) -> bool:
        return self.hard_delete(db, folder_id, auto_commit=auto_commit)

    def delete_many(self, db: Session, folder_ids: list[int], *, auto_commit: bool = True) -> int:
        """按给定顺序逐个删除（调用方保证子目录在前）。"""
        deleted = 0
        for folder_id in folder_ids:
            if self.delete_folder(db, folder_id, auto_commit=False):
                deleted += 1
        if auto_commit:
            db.commit()
        return deleted

    def collect_subtree_ids(self, db: Session, folder_id: int) -> list[int]:
        """返回以 ``folder_id`` 为根的子树全部 ID（按层级，根在前）。"""
        collected: list[int] = [folder_id]
        frontier = [folder_id]
        while frontier:
            rows = db.query(Folder.id).filter(Folder.parent_id.in_(frontier)).all()
            frontier = [row[0] for row in rows if row[0] not in collected]
            collected.extend(frontier)
        return collected

    def list_referrers(self, db: Session, target_ids: Iterable[int]) -> list[Folder]:
        """查找相关项目字段指向 ``target_ids`` 中任一目录的项目。"""
        tokens = {int(i) for i in target_ids if i is not None}
        if not tokens:
            return []
        return (
            self.query(db)
            .filter(
                or_(
                    Folder.related_project_1_id.in_(tokens),
                    Folder.related_project_2_id.in_(tokens),
                )
            )
            .all()
        )


folder_crud = CRUDFolder(Folder)
