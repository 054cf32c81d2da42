"""IAP 交易账本 CRUD 操作"""
from collections.abc import Sequence

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from watermark_api.api.errors import Conflict
from watermark_api.models import IapTransaction


def exists(*, session: Session, transaction_id: str) -> bool:
    stmt = select(IapTransaction.id).where(IapTransaction.transaction_id == transaction_id)
    return session.exec(stmt).first() is not None


def record(*, session: Session, transaction: IapTransaction) -> IapTransaction:
    """
    写入一条交易记录（不提交）

    调用方应先用 exists() 检查；这里仍依靠唯一索引拒绝重复，
    冲突时回滚当前事务并抛出 Conflict。
    """
    session.add(transaction)
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        raise Conflict(f"Transaction {transaction.transaction_id} already recorded")
    return transaction


def list_for_install(*, session: Session, install_id: str) -> Sequence[IapTransaction]:
    stmt = (
        select(IapTransaction)
        .where(IapTransaction.install_id == install_id)
        .order_by(col(IapTransaction.created_at).desc(), col(IapTransaction.id).desc())
    )
    return session.exec(stmt).all()
