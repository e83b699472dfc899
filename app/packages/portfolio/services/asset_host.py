"""资源托管客户端：把二进制文件上传到 Contentful 并发布为公开资源。

上传流程分为四步：
1. 向 upload 端点提交原始字节，得到 upload ID；
2. 创建资源（asset）并链接该 upload；
3. 触发资源处理，等待固定的稳定时间；
4. 发布资源，读取公开地址。

删除流程：先取消发布（失败只记录日志），再删除资源，返回是否删除成功。
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx

from app.packages.portfolio.core.config import Settings, get_settings
from app.packages.portfolio.core.constants import DEFAULT_CONTENT_TYPE
from app.packages.portfolio.core.exceptions import AssetHostError
from app.packages.portfolio.core.logger import logger

_MANAGEMENT_CONTENT_TYPE = "application/vnd.contentful.management.v1+json"


@dataclass
class UploadedAsset:
    asset_id: str
    public_url: str
    filename: str
    content_type: str


class AssetHost:
    """资源托管接口。"""

    def upload(self, data: bytes, filename: str, content_type: Optional[str] = None) -> UploadedAsset:
        raise NotImplementedError

    def delete(self, asset_id: str) -> bool:
        raise NotImplementedError

    def close(self) -> None:
        return None


class ContentfulAssetHost(AssetHost):
    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self._sleep = sleep
        self._client = httpx.Client(timeout=self.settings.contentful_timeout_seconds, transport=transport)

    # ------------------------------------------------------------------
    # 内部工具
    # ------------------------------------------------------------------

    def _credentials(self) -> tuple[str, str, str]:
        s = self.settings
        if not s.contentful_configured:
            raise AssetHostError("Missing Contentful configuration (access token, space or environment)")
        return s.contentful_access_token, s.contentful_space_id, s.contentful_environment_id

    def _auth(self, token: str, **extra: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", **extra}

    def _asset_url(self, space: str, environment: str, suffix: str = "") -> str:
        base = self.settings.contentful_api_base_url.rstrip("/")
        return f"{base}/spaces/{space}/environments/{environment}/assets{suffix}"

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    # ------------------------------------------------------------------
    # 上传
    # ------------------------------------------------------------------

    def upload(self, data: bytes, filename: str, content_type: Optional[str] = None) -> UploadedAsset:
        token, space, environment = self._credentials()
        locale = self.settings.contentful_locale
        content_type = content_type or DEFAULT_CONTENT_TYPE
        size_mb = len(data) / (1024 * 1024)

        try:
            upload_res = self._client.post(
                f"{self.settings.contentful_upload_base_url.rstrip('/')}/spaces/{space}/uploads",
                headers=self._auth(token, **{"Content-Type": "application/octet-stream"}),
                content=data,
            )
            if upload_res.status_code in (413, 422):
                raise AssetHostError(
                    f"File too large ({size_mb:.2f} MB) for the asset host plan", upload_res.status_code
                )
            if upload_res.is_error:
                raise AssetHostError(f"Failed to create upload: {upload_res.status_code}", upload_res.status_code)
            upload_id = (self._json(upload_res).get("sys") or {}).get("id")
            if not upload_id:
                raise AssetHostError("Failed to create upload - no ID returned")
            logger.debug("Contentful upload created: %s (%s)", upload_id, filename)

            asset_res = self._client.post(
                self._asset_url(space, environment),
                headers=self._auth(token, **{"Content-Type": _MANAGEMENT_CONTENT_TYPE}),
                json={
                    "fields": {
                        "title": {locale: filename},
                        "file": {
                            locale: {
                                "contentType": content_type,
                                "fileName": filename,
                                "uploadFrom": {
                                    "sys": {"type": "Link", "linkType": "Upload", "id": upload_id},
                                },
                            }
                        },
                    }
                },
            )
            if asset_res.is_error:
                raise AssetHostError(f"Failed to create asset: {asset_res.status_code}", asset_res.status_code)
            asset_sys = self._json(asset_res).get("sys") or {}
            asset_id = asset_sys.get("id")
            version = int(asset_sys.get("version") or 1)
            if not asset_id:
                raise AssetHostError("Failed to create asset - no ID returned")

            process_res = self._client.put(
                self._asset_url(space, environment, f"/{asset_id}/files/{locale}/process"),
                headers=self._auth(token, **{"X-Contentful-Version": str(version)}),
            )
            if process_res.is_error:
                logger.warning("Contentful asset processing failed: %s (%s)", asset_id, process_res.status_code)

            self._sleep(self.settings.contentful_process_settle_seconds)

            publish_res = self._client.put(
                self._asset_url(space, environment, f"/{asset_id}/published"),
                headers=self._auth(token, **{"X-Contentful-Version": str(version + 1)}),
            )
            if publish_res.status_code == 422:
                raise AssetHostError(
                    f"Asset publishing failed (422); file size {size_mb:.2f} MB may exceed the plan limit", 422
                )
            if publish_res.is_error:
                raise AssetHostError(
                    f"Asset publishing failed with status {publish_res.status_code}", publish_res.status_code
                )
        except httpx.HTTPError as exc:
            raise AssetHostError(f"Asset host request failed: {exc}") from exc

        file_field = (self._json(publish_res).get("fields") or {}).get("file") or {}
        raw_url = (file_field.get(locale) or {}).get("url") or ""
        public_url = f"https:{raw_url}" if raw_url.startswith("//") else raw_url
        if not public_url:
            raise AssetHostError("Published asset has no URL")

        logger.info("Contentful asset published: %s -> %s", asset_id, public_url)
        return UploadedAsset(asset_id=asset_id, public_url=public_url, filename=filename, content_type=content_type)

    # ------------------------------------------------------------------
    # 删除
    # ------------------------------------------------------------------

    def delete(self, asset_id: str) -> bool:
        try:
            token, space, environment = self._credentials()
        except AssetHostError:
            logger.error("Missing Contentful configuration, cannot delete asset %s", asset_id)
            return False

        try:
            unpublish_res = self._client.delete(
                self._asset_url(space, environment, f"/{asset_id}/published"),
                headers=self._auth(token),
            )
            if unpublish_res.is_error:
                logger.warning(
                    "Failed to unpublish asset %s (%s), continuing with deletion",
                    asset_id,
                    unpublish_res.status_code,
                )

            delete_res = self._client.delete(
                self._asset_url(space, environment, f"/{asset_id}"),
                headers=self._auth(token),
            )
        except httpx.HTTPError as exc:
            logger.error("Error deleting asset %s from Contentful: %s", asset_id, exc)
            return False

        if delete_res.is_error:
            logger.error("Failed to delete asset %s from Contentful: %s", asset_id, delete_res.status_code)
            return False

        logger.info("Asset deleted from Contentful: %s", asset_id)
        return True

    def close(self) -> None:
        self._client.close()
