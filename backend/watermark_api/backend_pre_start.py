"""
应用启动前检查脚本

在应用启动前检查数据库连接是否可用，然后再执行迁移并启动服务。
主要用于 Docker Compose 环境，数据库容器可能还在初始化。

使用方式：
    python -m watermark_api.backend_pre_start
    alembic upgrade head
    uvicorn watermark_api.main:app --host 0.0.0.0 --port 8000
"""
import logging

from sqlalchemy import Engine
from sqlmodel import Session, select
from tenacity import (
    after_log,
    before_log,
    retry,
    stop_after_attempt,
    wait_fixed,
)

from watermark_api.core.db import engine

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

max_tries = 60 * 5  # 最多尝试 5 分钟，每秒一次
wait_seconds = 1


@retry(
    stop=stop_after_attempt(max_tries),
    wait=wait_fixed(wait_seconds),
    before=before_log(logger, logging.INFO),
    after=after_log(logger, logging.WARN),
)
def init(db_engine: Engine) -> None:
    """
    执行 select(1) 验证数据库可用，失败时由 tenacity 重试
    """
    try:
        with Session(db_engine) as session:
            session.exec(select(1))
    except Exception as e:
        logger.error(e)
        raise e


def main() -> None:
    logger.info("Initializing service")
    init(engine)
    logger.info("Service finished initializing")


if __name__ == "__main__":  # pragma: no cover
    main()
