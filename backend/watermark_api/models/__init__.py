"""
数据库模型定义模块

本模块使用 SQLModel 定义所有数据库表结构。

模型按功能拆分：
- entitlement.py: 安装权益模型
- transaction.py: IAP 交易账本模型
"""
from sqlmodel import SQLModel

from .base import utc_now
from .entitlement import Entitlement
from .transaction import IapTransaction

__all__ = [
    "SQLModel",
    "utc_now",
    "Entitlement",
    "IapTransaction",
]
