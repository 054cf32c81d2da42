"""
API 请求/响应数据模型（Schema）

定义所有 API 接口的请求和响应数据结构。
使用 Pydantic 进行数据验证和序列化。

移动端使用 camelCase 字段名（installId、freeRemaining 等），
所以这里统一配置 alias_generator=to_camel，Python 侧仍使用 snake_case。
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    camelCase 基础模型

    populate_by_name=True 允许在代码中用 snake_case 构造，
    响应时 FastAPI 按别名（camelCase）输出。
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# 通用响应模型
# ============================================================


class ErrorBody(BaseModel):
    """
    错误响应格式

    示例：
        {"code": "PAYWALL", "message": "Free quota used...", "data": null}
    """
    code: str
    message: str
    data: Any | None = None


class HealthData(BaseModel):
    status: str = "healthy"
    version: str


# ============================================================
# 权益
# ============================================================


class EntitlementData(CamelModel):
    """
    权益状态响应

    Pro 用户的 free_remaining 为"无限"哨兵值（默认 999）。
    """
    install_id: str
    is_pro: bool
    free_remaining: int
    credits: int


# ============================================================
# 图像编辑
# ============================================================


class BBoxIn(BaseModel):
    """归一化矩形（0-1），由客户端框选得到"""
    x0: float
    y0: float
    x1: float
    y1: float


class EditRequest(CamelModel):
    install_id: str = Field(min_length=1, max_length=128)
    image_base64: str = Field(min_length=1)
    bbox: BBoxIn
    retry_level: int = Field(default=0, ge=0, le=2)  # 重试级别 0-2


class EditMeta(CamelModel):
    retry_level: int


class EditResponse(CamelModel):
    result_base64: str
    meta: EditMeta


# ============================================================
# IAP
# ============================================================


class IapVerifyRequest(CamelModel):
    """
    IAP 收据验证请求

    platform 和 product_id 不在这里做枚举校验，
    由服务层返回 INVALID_PLATFORM / INVALID_PRODUCT。
    """
    install_id: str = Field(min_length=1, max_length=128)
    platform: str
    product_id: str
    receipt: str = Field(min_length=1)


class IapVerifyResponse(CamelModel):
    success: bool = True
    is_pro: bool
    credits: int
    credits_added: int  # 重放时为 0
    free_remaining: int
    transaction_id: str
    replayed: bool


class IapTransactionPublic(CamelModel):
    transaction_id: str
    original_transaction_id: str
    product_id: str
    purchased_at: str | None = None
    created_at: datetime


class IapTransactionsData(CamelModel):
    data: list[IapTransactionPublic]
    count: int
