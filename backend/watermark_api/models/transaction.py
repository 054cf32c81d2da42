"""
IAP 交易模型模块

定义已入账的应用内购买交易记录（只追加的账本）。
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field, SQLModel

from .base import utc_now


class IapTransaction(SQLModel, table=True):
    """
    IAP 交易记录模型

    每笔被接受的购买对应一条记录。transaction_id 唯一，用于重放检测：
    同一笔交易重复提交时不会再次入账。记录创建后不可修改、不删除。

    字段说明：
    - id: 自增主键
    - transaction_id: 平台交易 ID（唯一索引，幂等键）
    - original_transaction_id: 续订链中第一笔交易的 ID（缺省等于 transaction_id）
    - product_id: 商品 ID
    - install_id: 所属安装（普通索引，不建外键）
    - purchased_at: 购买时间（ISO-8601，平台未返回时为空）
    - raw_receipt_excerpt: 原始收据的截断副本，仅用于审计
    - created_at: 入账时间
    """
    __tablename__ = "iap_transactions"

    id: int | None = Field(default=None, primary_key=True)
    transaction_id: str = Field(
        sa_column=Column(String(128), unique=True, index=True, nullable=False)
    )
    original_transaction_id: str = Field(max_length=128)
    product_id: str = Field(max_length=64)
    install_id: str = Field(
        sa_column=Column(String(128), index=True, nullable=False)
    )
    purchased_at: str | None = Field(default=None, max_length=64)
    raw_receipt_excerpt: str | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
