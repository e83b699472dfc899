"""目录模型：分类（顶层）与项目（分类下的子目录）共用一张表。"""

from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import expression

from app.packages.portfolio.models.base import Base, TimestampMixin


class Folder(TimestampMixin, Base):
    """目录实体，通过 `parent_id` 形成“分类 → 项目”两级树。

    - 分类：`parent_id IS NULL` 且 `is_category = True`；
    - 项目：`parent_id` 指向分类，`is_category = False`；
    - 新建项目时 `slug` 在同一父节点下唯一，重命名默认不做此检查；
    - `is_protected` 在创建时确定，不随重命名变化；
    - 两个相关项目字段是弱引用，被引用项目删除时置空。
    """

    __tablename__ = "folders"
    __table_args__ = (
        Index("ix_folders_parent_slug", "parent_id", "slug"),
        CheckConstraint("parent_id IS NULL OR parent_id <> id", name="no_self_parent"),
        CheckConstraint(
            "related_project_1_id IS NULL OR related_project_1_id <> id", name="no_self_related_1"
        ),
        CheckConstraint(
            "related_project_2_id IS NULL OR related_project_2_id <> id", name="no_self_related_2"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    slug: Mapped[str] = mapped_column(String(255), index=True)
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("folders.id", ondelete="CASCADE"), nullable=True, index=True
    )
    is_category: Mapped[bool] = mapped_column(Boolean, server_default=expression.false(), default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, server_default=expression.true(), default=True)
    is_protected: Mapped[bool] = mapped_column(Boolean, server_default=expression.false(), default=False)
    hero_image_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    related_project_1_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("folders.id", ondelete="SET NULL"), nullable=True
    )
    related_project_2_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("folders.id", ondelete="SET NULL"), nullable=True
    )
    # 同级排序
    ordering: Mapped[int] = mapped_column(Integer, default=0, nullable=False, index=True)
