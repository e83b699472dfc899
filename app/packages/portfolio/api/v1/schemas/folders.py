"""目录（分类/项目）相关的请求与响应模型。"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from app.packages.portfolio.api.v1.schemas.common import ResponseEnvelope


# ---------------------------------------------------------------------------
# 请求
# ---------------------------------------------------------------------------


class ProjectCreateRequest(BaseModel):
    """新建项目的请求体。"""

    name: str = Field(..., min_length=1, description="项目名称")
    parent_id: int = Field(..., description="所属分类 ID")
    hero_image_url: Optional[str] = Field(default=None, description="封面图地址，可选")

    @model_validator(mode="after")
    def _normalize(self) -> "ProjectCreateRequest":
        self.name = self.name.strip()
        if not self.name:
            raise ValueError("项目名称不能为空")
        if self.hero_image_url is not None:
            self.hero_image_url = self.hero_image_url.strip() or None
        return self


class FolderRenameRequest(BaseModel):
    name: str = Field(..., min_length=1, description="新名称")


class HeroImageUpdateRequest(BaseModel):
    """设置或清空封面图；``url`` 为空表示清空。"""

    url: Optional[str] = Field(default=None, description="封面图地址")


class ActiveStateRequest(BaseModel):
    is_active: bool = Field(..., description="是否启用")


class RelatedProjectsRequest(BaseModel):
    """相关项目更新请求：未出现的字段保持不变，显式 ``null`` 表示清空。"""

    related_project_1_id: Optional[int] = Field(default=None, description="相关项目 1")
    related_project_2_id: Optional[int] = Field(default=None, description="相关项目 2")


class ReorderRequest(BaseModel):
    """拖拽排序：交换被拖拽项与目标项的位置。"""

    dragged_id: int = Field(..., description="被拖拽的项目 ID")
    target_id: int = Field(..., description="放置位置上的项目 ID")


# ---------------------------------------------------------------------------
# 响应
# ---------------------------------------------------------------------------


class FolderItem(BaseModel):
    id: int
    name: str
    slug: str
    parent_id: Optional[int]
    is_category: bool
    is_active: bool
    is_protected: bool
    hero_image_url: Optional[str]
    related_project_1_id: Optional[int]
    related_project_2_id: Optional[int]
    ordering: int
    create_time: Optional[str]
    update_time: Optional[str]


class ProjectWithCountItem(FolderItem):
    media_count: int = 0


class ProjectWithImageItem(FolderItem):
    first_image_url: Optional[str] = None


class CategoryTreeItem(BaseModel):
    """分类树节点：分类及其项目、媒体总数。"""

    id: int
    name: str
    slug: str
    is_protected: bool
    projects: List[ProjectWithCountItem]
    total_media_count: int


class ProjectGroupItem(BaseModel):
    parent_id: int
    parent_name: str
    projects: List[FolderItem]


class FolderWithRelatedItem(FolderItem):
    related_project_1: Optional[FolderItem] = None
    related_project_2: Optional[FolderItem] = None


class FolderDeletionPayload(BaseModel):
    id: int
    deleted_folders: int
    deleted_media: int
    remote_failures: List[str]


class ReorderPayload(BaseModel):
    """交换完成后重新加载的同级项目列表。"""

    parent_id: Optional[int]
    items: List[FolderItem]


FolderListResponse = ResponseEnvelope[List[FolderItem]]
FolderResponse = ResponseEnvelope[FolderItem]
FolderWithRelatedResponse = ResponseEnvelope[FolderWithRelatedItem]
CategoryTreeResponse = ResponseEnvelope[List[CategoryTreeItem]]
ProjectGroupResponse = ResponseEnvelope[List[ProjectGroupItem]]
ProjectWithImageListResponse = ResponseEnvelope[List[ProjectWithImageItem]]
FolderDeletionResponse = ResponseEnvelope[FolderDeletionPayload]
FolderReorderResponse = ResponseEnvelope[ReorderPayload]
