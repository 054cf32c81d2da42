"""
基础模型工具

所有时间字段统一使用带时区的 UTC 时间。
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """当前 UTC 时间（created_at / updated_at 的默认值）"""
    return datetime.now(timezone.utc)


__all__ = ["utc_now"]
