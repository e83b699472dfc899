"""常量定义：集中维护 HTTP 状态码与业务常量。"""

from fastapi import status

HTTP_STATUS_OK = status.HTTP_200_OK
HTTP_STATUS_CREATED = status.HTTP_201_CREATED
HTTP_STATUS_BAD_REQUEST = status.HTTP_400_BAD_REQUEST
HTTP_STATUS_FORBIDDEN = status.HTTP_403_FORBIDDEN
HTTP_STATUS_NOT_FOUND = status.HTTP_404_NOT_FOUND
HTTP_STATUS_CONFLICT = status.HTTP_409_CONFLICT
HTTP_STATUS_PAYLOAD_TOO_LARGE = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
HTTP_STATUS_BAD_GATEWAY = status.HTTP_502_BAD_GATEWAY
HTTP_STATUS_INTERNAL_ERROR = status.HTTP_500_INTERNAL_SERVER_ERROR

# 首张图片判定所用的扩展名
IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp")

# 上传时未指定文件类型的兜底值
DEFAULT_CONTENT_TYPE = "application/octet-stream"
