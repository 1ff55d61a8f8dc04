"""
图片上传服务（ImageKit）
"""
import logging
import random
import re
import string
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import httpx

from mango_articles.core.config import settings

logger = logging.getLogger(__name__)

MOCK_PLACEHOLDER_URL = "https://placehold.co/600x400.{ext}?text={text}"


class UploadError(Exception):
    """上传失败"""

    def __init__(self, message: str, details: str = "", status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.details = details
        self.status_code = status_code


@dataclass
class UploadResult:
    """上传结果"""
    url: str
    file_id: str
    name: str
    size: int
    content_type: str
    mock: bool = False

    def to_dict(self) -> dict:
        data = {
            "url": self.url,
            "fileId": self.file_id,
            "name": self.name,
            "size": self.size,
            "type": self.content_type,
        }
        if self.mock:
            data["mock"] = True
        return data


def validate_upload(content_type: Optional[str], size: int):
    """
    上传前校验文件类型和大小

    Raises:
        UploadError: 类型不允许或超过大小限制（status_code=400）
    """
    allowed_types = settings.UPLOAD_ALLOWED_TYPES
    if content_type not in allowed_types:
        raise UploadError(
            f"Invalid file type: {content_type}",
            details=f"Allowed types: {', '.join(allowed_types)}",
            status_code=400,
        )
    if size > settings.UPLOAD_MAX_BYTES:
        max_mb = settings.UPLOAD_MAX_BYTES // (1024 * 1024)
        raise UploadError(
            f"File size exceeds the maximum allowed ({max_mb}MB)",
            status_code=400,
        )


def unique_file_name(filename: str) -> str:
    """
    生成不易冲突的文件名：<毫秒时间戳>-<6位随机串>-<清洗后的原文件名>
    """
    timestamp = int(time.time() * 1000)
    random_str = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    safe_name = re.sub(r"[^a-zA-Z0-9.-]", "-", filename or "image")
    return f"{timestamp}-{random_str}-{safe_name}"


class ImageUploader:
    """ImageKit上传客户端"""

    def __init__(
        self,
        public_key: Optional[str] = None,
        private_key: Optional[str] = None,
        url_endpoint: Optional[str] = None,
        upload_url: str = settings.IMAGEKIT_UPLOAD_URL,
        mock: bool = False,
        timeout: float = settings.UPLOAD_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.public_key = public_key
        self.private_key = private_key
        self.url_endpoint = url_endpoint
        self.upload_url = upload_url
        self.mock = mock
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls) -> "ImageUploader":
        return cls(
            public_key=settings.IMAGEKIT_PUBLIC_KEY,
            private_key=settings.IMAGEKIT_PRIVATE_KEY,
            url_endpoint=settings.IMAGEKIT_URL_ENDPOINT,
            upload_url=settings.IMAGEKIT_UPLOAD_URL,
            mock=settings.USE_MOCK_IMAGEKIT,
            timeout=settings.UPLOAD_TIMEOUT_SECONDS,
        )

    @property
    def configured(self) -> bool:
        return bool(self.public_key and self.private_key and self.url_endpoint)

    async def upload(self, data: bytes, filename: str, content_type: str) -> UploadResult:
        """
        上传图片

        Args:
            data: 文件内容
            filename: 原始文件名
            content_type: MIME类型

        Returns:
            UploadResult: 上传结果

        Raises:
            UploadError: 凭证缺失、认证失败或ImageKit返回错误
        """
        name = unique_file_name(filename)

        if self.mock:
            logger.info("Mock upload for %s", name)
            ext = "jpg" if content_type in ("image/jpeg", "image/jpg") else "png"
            return UploadResult(
                url=MOCK_PLACEHOLDER_URL.format(ext=ext, text=quote(filename or "image", safe="")),
                file_id=f"mock_{int(time.time() * 1000)}",
                name=name,
                size=len(data),
                content_type=content_type,
                mock=True,
            )

        if not self.configured:
            logger.error(
                "Missing ImageKit credentials (public_key=%s, private_key=%s, url_endpoint=%s)",
                bool(self.public_key), bool(self.private_key), bool(self.url_endpoint),
            )
            raise UploadError(
                "Server configuration error - ImageKit credentials missing",
                details="Please contact the administrator to set up ImageKit properly",
            )

        logger.info("Uploading image %s (%d bytes)", name, len(data))
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.upload_url,
                    auth=(self.private_key, ""),
                    data={"fileName": name, "useUniqueFileName": "true"},
                    files={"file": (name, data, content_type)},
                )
        except httpx.HTTPError as e:
            logger.exception("ImageKit request failed")
            raise UploadError("Failed to upload image", details=str(e)) from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if response.status_code in (401, 403):
            raise UploadError(
                "ImageKit authentication failed",
                details="The server's ImageKit credentials are invalid or expired. Please contact the administrator.",
            )
        if response.status_code >= 400 or "url" not in payload:
            logger.error("ImageKit upload error %s: %s", response.status_code, payload)
            raise UploadError(
                payload.get("message") or "Failed to upload image",
                details=payload.get("help") or "",
            )

        logger.info("Upload successful: %s", payload["url"])
        return UploadResult(
            url=payload["url"],
            file_id=payload.get("fileId", ""),
            name=payload.get("name", name),
            size=payload.get("size", len(data)),
            content_type=content_type,
        )
