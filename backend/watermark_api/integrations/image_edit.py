"""
火山引擎 Ark 图像编辑集成模块

对外部图像编辑服务的黑盒封装：(图片, 区域, 重试级别) -> 编辑后的图片。
提示词与模型行为不在本服务的关注范围内，这里只负责请求与响应的搬运。

支持模拟模式（mock），本地开发时直接返回原图，不调用真实 API。
"""
from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from watermark_api.api.errors import ProcessingFailed
from watermark_api.core.config import settings

logger = logging.getLogger(__name__)

_GENERATIONS_PATH = "/images/generations"

_PROMPT = (
    "Generate an image identical to the reference, but remove the watermark/text/overlay "
    "in the region at {region}. Everything else must remain identical."
)


@dataclass(frozen=True)
class BBox:
    """归一化矩形区域，坐标范围 [0, 1]"""
    x0: float
    y0: float
    x1: float
    y1: float

    def is_valid(self) -> bool:
        return 0 <= self.x0 < self.x1 <= 1 and 0 <= self.y0 < self.y1 <= 1

    def expanded(self, ratio: float) -> BBox:
        dx = (self.x1 - self.x0) * ratio / 2
        dy = (self.y1 - self.y0) * ratio / 2
        return BBox(
            x0=max(0.0, self.x0 - dx),
            y0=max(0.0, self.y0 - dy),
            x1=min(1.0, self.x1 + dx),
            y1=min(1.0, self.y1 + dy),
        )

    def describe(self) -> str:
        return (
            f"left {self.x0 * 100:.0f}% top {self.y0 * 100:.0f}% "
            f"right {self.x1 * 100:.0f}% bottom {self.y1 * 100:.0f}%"
        )


class ImageEditor(Protocol):
    """图像编辑器接口（编辑路由依赖的外部协作者）"""

    def edit(self, *, image_base64: str, bbox: BBox, retry_level: int = 0) -> str | None: ...


def strip_data_url(image_base64: str) -> str:
    """去掉 data:image/...;base64, 前缀"""
    if "," in image_base64:
        return image_base64.split(",", 1)[1]
    return image_base64


def decoded_size_bytes(image_base64: str) -> int:
    data = strip_data_url(image_base64)
    try:
        return len(base64.b64decode(data, validate=False))
    except (ValueError, TypeError):
        return len(data) * 3 // 4


class ArkImageEditClient:
    """
    Ark images/generations 客户端（图生图模式）
    """

    def __init__(self) -> None:
        self._mock = settings.IMAGE_EDIT_MOCK
        self._base_url = settings.ARK_ENDPOINT.rstrip("/")
        self._api_key = settings.ARK_API_KEY
        self._model = settings.ARK_MODEL
        self._timeout = settings.IMAGE_EDIT_TIMEOUT_SECONDS

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            raise ProcessingFailed("ARK_API_KEY not configured")
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def edit(self, *, image_base64: str, bbox: BBox, retry_level: int = 0) -> str | None:
        """
        去除指定区域的水印

        Args:
            image_base64: 原图（base64 或 data URL）
            bbox: 水印所在的归一化区域
            retry_level: 重试级别（0-2），级别 2 会把区域外扩 10%

        Returns:
            编辑后的图片 data URL；服务没有返回图片时为 None
        """
        if self._mock:
            return image_base64

        region = bbox.expanded(0.1) if retry_level >= 2 else bbox
        body: dict[str, Any] = {
            "model": self._model,
            "prompt": _PROMPT.format(region=region.describe()),
            "image": f"data:image/jpeg;base64,{strip_data_url(image_base64)}",
            "size": "1920x1920",
            "n": 1,
            "response_format": "b64_json",
            "watermark": False,
        }
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.post(f"{self._base_url}{_GENERATIONS_PATH}", json=body, headers=self._headers())
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Ark image edit failed: {e}")
            raise ProcessingFailed(f"Ark API error: {e}") from e

        items = data.get("data") if isinstance(data, dict) else None
        if not items or not isinstance(items, list):
            return None
        first = items[0]
        if not isinstance(first, dict):
            logger.warning(f"Ark image edit returned an unexpected item: {type(first).__name__}")
            return None
        b64 = first.get("b64_json")
        return f"data:image/png;base64,{b64}" if b64 else None


# 全局客户端实例
ark_image_edit_client = ArkImageEditClient()
