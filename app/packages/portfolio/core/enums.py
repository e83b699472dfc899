"""枚举定义：约束媒体布局与批量操作结果的可选值。"""

from enum import Enum


class MediaLayoutEnum(str, Enum):
    """历代部署出现过的布局取值；实际生效的循环序列由配置 ``MEDIA_LAYOUT_CYCLE`` 决定。"""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    DOUBLE = "double"


class ResultStatusEnum(str, Enum):
    """批量上传中单个文件的处理状态。"""

    SUCCESS = "success"
    FAILURE = "failure"
