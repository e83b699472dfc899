"""媒体模型：项目下上传完成的图片或视频。"""

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.packages.portfolio.models.base import Base, TimestampMixin


class Media(TimestampMixin, Base):
    __tablename__ = "media"

    # 由服务端生成的字符串 ID（uuid4 hex），上传到资源托管时也用作文件名前缀
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    folder_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("folders.id", ondelete="CASCADE"), index=True
    )
    url: Mapped[str] = mapped_column(String(1024))
    # 远端资源 ID；删除媒体时据此释放远端资源
    asset_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    filename: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    content_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False, index=True)
    layout: Mapped[str] = mapped_column(String(32))
    # 秒；仅对视频有意义
    video_start_time: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
