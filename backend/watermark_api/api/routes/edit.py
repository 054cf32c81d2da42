"""
图像编辑路由模块

POST /v1/edit：付费墙检查 -> 调用外部图像编辑服务 -> 成功后提交用量。

用量只在编辑成功后提交；编辑失败或客户端中途放弃都不会消耗额度。
"""
from __future__ import annotations

import logging

from fastapi import APIRouter

from watermark_api.api.deps import EntitlementServiceDep, ImageEditorDep
from watermark_api.api.errors import ImageTooLarge, InvalidBBox, ProcessingFailed
from watermark_api.api.schemas import EditMeta, EditRequest, EditResponse
from watermark_api.core.config import settings
from watermark_api.integrations.image_edit import BBox, decoded_size_bytes

logger = logging.getLogger(__name__)

router = APIRouter(tags=["edit"])


@router.post("/edit", response_model=EditResponse)
def edit(
    body: EditRequest, service: EntitlementServiceDep, editor: ImageEditorDep
) -> EditResponse:
    """
    去除图片中指定区域的水印

    请求路径: POST /v1/edit

    Raises:
        InvalidBBox: 区域坐标不合法（400）
        ImageTooLarge: 图片超过 MAX_IMAGE_SIZE_MB（413）
        PaywallExceeded: 免费额度与点数都已用完（402）
        ProcessingFailed: 外部服务失败或没有返回图片（500）
    """
    bbox = BBox(x0=body.bbox.x0, y0=body.bbox.y0, x1=body.bbox.x1, y1=body.bbox.y1)
    if not bbox.is_valid():
        raise InvalidBBox()

    size_mb = decoded_size_bytes(body.image_base64) / (1024 * 1024)
    if size_mb > settings.MAX_IMAGE_SIZE_MB:
        raise ImageTooLarge(
            f"Image too large: {size_mb:.1f}MB (max: {settings.MAX_IMAGE_SIZE_MB}MB)"
        )

    grant = service.authorize_usage(body.install_id)

    result = editor.edit(image_base64=body.image_base64, bbox=bbox, retry_level=body.retry_level)
    if not result:
        logger.warning(f"Image edit returned no result for install {body.install_id}")
        raise ProcessingFailed("Image processing returned no result")

    service.commit_usage(grant)
    return EditResponse(result_base64=result, meta=EditMeta(retry_level=body.retry_level))
