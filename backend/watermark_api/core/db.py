"""
数据库连接模块

管理数据库引擎的创建。
使用 SQLModel 的 create_engine 创建数据库连接池。

重要提示：
- 数据库表结构通过 Alembic 迁移管理，不要在这里创建表
- 确保在使用前导入所有模型（watermark_api.models）
"""
from sqlmodel import create_engine

from watermark_api.core.config import settings


def _connect_args(uri: str) -> dict[str, object]:
    # SQLite 连接默认只能在创建它的线程使用，FastAPI 同步路由运行在线程池中
    if uri.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.SQLALCHEMY_DATABASE_URI,
    connect_args=_connect_args(settings.SQLALCHEMY_DATABASE_URI),
    pool_pre_ping=True,
)
