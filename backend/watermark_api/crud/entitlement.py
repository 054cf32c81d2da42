"""权益 CRUD 操作

计数器一律在 SQL 中以增量方式更新（col = col + :delta），
扣减类操作把检查条件放进 WHERE，保证并发请求不会重复占用同一次额度。
"""
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col

from watermark_api.api.errors import InvalidArgument, NotFound
from watermark_api.models import Entitlement, utc_now

logger = logging.getLogger(__name__)


def get(*, session: Session, install_id: str) -> Entitlement | None:
    """按安装 ID 查询权益（总是从数据库重新加载）"""
    return session.get(Entitlement, install_id, populate_existing=True)


def get_or_create(*, session: Session, install_id: str) -> Entitlement:
    """获取权益，不存在则创建一条全零记录"""
    if not install_id:
        raise InvalidArgument("installId is required")

    entitlement = get(session=session, install_id=install_id)
    if entitlement:
        return entitlement

    entitlement = Entitlement(install_id=install_id, is_pro=False, free_used_count=0, credits=0)
    session.add(entitlement)
    try:
        session.commit()
    except IntegrityError:
        # 另一个请求抢先插入了同一个 install_id
        session.rollback()
        existing = get(session=session, install_id=install_id)
        if existing is None:
            raise
        return existing
    session.refresh(entitlement)
    logger.info(f"Created entitlement for install {install_id}")
    return entitlement


def apply_update(
    *,
    session: Session,
    install_id: str,
    is_pro: bool | None = None,
    free_used_count_delta: int = 0,
    credits_delta: int = 0,
    commit: bool = True,
) -> None:
    """
    合并更新权益

    只修改传入的字段；计数器按增量应用，总是刷新 updated_at。
    commit=False 时由调用方负责提交（用于和账本插入放在同一个事务里）。
    """
    values: dict[str, object] = {"updated_at": utc_now()}
    if is_pro is not None:
        values["is_pro"] = is_pro
    if free_used_count_delta:
        values["free_used_count"] = col(Entitlement.free_used_count) + free_used_count_delta
    if credits_delta:
        values["credits"] = col(Entitlement.credits) + credits_delta

    stmt = (
        update(Entitlement)
        .where(col(Entitlement.install_id) == install_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = session.exec(stmt)  # type: ignore[call-overload]
    if result.rowcount == 0:
        session.rollback()
        raise NotFound(f"Entitlement not found for install {install_id}")
    if commit:
        session.commit()


def increment_free_used(*, session: Session, install_id: str) -> None:
    apply_update(session=session, install_id=install_id, free_used_count_delta=1)


def consume_free_use(*, session: Session, install_id: str, limit: int) -> bool:
    """仅当仍有免费额度时占用一次，返回是否成功"""
    stmt = (
        update(Entitlement)
        .where(
            col(Entitlement.install_id) == install_id,
            col(Entitlement.free_used_count) < limit,
        )
        .values(
            free_used_count=col(Entitlement.free_used_count) + 1,
            updated_at=utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    result = session.exec(stmt)  # type: ignore[call-overload]
    session.commit()
    return result.rowcount == 1


def consume_credit(*, session: Session, install_id: str) -> bool:
    """仅当点数余额大于 0 时扣除一个点数，返回是否成功"""
    stmt = (
        update(Entitlement)
        .where(
            col(Entitlement.install_id) == install_id,
            col(Entitlement.credits) > 0,
        )
        .values(
            credits=col(Entitlement.credits) - 1,
            updated_at=utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    result = session.exec(stmt)  # type: ignore[call-overload]
    session.commit()
    return result.rowcount == 1
