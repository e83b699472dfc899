"""媒体相关的请求与响应模型。"""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field

from app.packages.portfolio.api.v1.schemas.common import ResponseEnvelope


class MediaReorderRequest(BaseModel):
    dragged_id: str = Field(..., min_length=1, description="被拖拽的媒体 ID")
    target_id: str = Field(..., min_length=1, description="放置位置上的媒体 ID")


class VideoStartTimeRequest(BaseModel):
    """视频起播时间，分、秒均需为非负整数（可为数字字符串）。"""

    minutes: Union[int, str] = Field(..., description="分钟")
    seconds: Union[int, str] = Field(..., description="秒")


class MediaItem(BaseModel):
    id: str
    folder_id: int
    url: str
    asset_id: Optional[str]
    filename: Optional[str]
    content_type: Optional[str]
    order_index: int
    layout: str
    video_start_time: int
    create_time: Optional[str]
    update_time: Optional[str]


class MediaListPayload(BaseModel):
    folder_id: int
    folder_name: str
    items: List[MediaItem]


class UploadResultItem(BaseModel):
    """批量上传中单个文件的结果。"""

    filename: str
    status: str
    message: Optional[str] = None
    code: Optional[int] = None
    media: Optional[MediaItem] = None


class UploadBatchPayload(BaseModel):
    succeeded: int
    failed: int
    results: List[UploadResultItem]
    items: List[MediaItem]


class MediaDeletionPayload(BaseModel):
    id: str
    folder_id: int
    remote_released: bool
    items: List[MediaItem]


MediaResponse = ResponseEnvelope[MediaItem]
MediaListResponse = ResponseEnvelope[MediaListPayload]
UploadBatchResponse = ResponseEnvelope[UploadBatchPayload]
MediaDeletionResponse = ResponseEnvelope[MediaDeletionPayload]
MediaReorderResponse = MediaListResponse
