"""
权益模型模块

定义每个安装（installation）的权益记录：Pro 状态、免费额度使用次数、点数余额。
"""
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, String
from sqlmodel import Field, SQLModel

from .base import utc_now


class Entitlement(SQLModel, table=True):
    """
    权益模型

    每个安装只有一条记录，以客户端生成的 install_id 作为主键（无用户账号）。
    第一次查询时惰性创建（get-or-create），从不删除。

    字段说明：
    - install_id: 安装 ID（主键）
    - is_pro: 是否已解锁 Pro（旧版一次性购买，不限次数）
    - free_used_count: 已使用的免费次数（只增不减）
    - credits: 点数余额（购买增加，成功编辑后扣除）
    - created_at / updated_at: 创建与更新时间
    """
    __tablename__ = "entitlements"
    __table_args__ = (
        CheckConstraint("free_used_count >= 0", name="ck_entitlements_free_used_count"),
        CheckConstraint("credits >= 0", name="ck_entitlements_credits"),
    )

    install_id: str = Field(
        max_length=128,
        sa_column=Column(String(128), primary_key=True, nullable=False),
    )
    is_pro: bool = Field(default=False)
    free_used_count: int = Field(default=0)
    credits: int = Field(default=0)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
