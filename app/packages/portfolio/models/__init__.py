"""ORM 模型集合，导入即完成表注册。"""

from app.packages.portfolio.models.base import Base
from app.packages.portfolio.models.folder import Folder
from app.packages.portfolio.models.media import Media

__all__ = ["Base", "Folder", "Media"]
