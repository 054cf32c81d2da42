"""
IAP 路由模块

- POST /v1/iap/verify：验证 Apple 收据并入账（同一交易只入账一次）
- GET /v1/iap/transactions：查询某个安装已入账的交易（审计）
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from watermark_api import crud
from watermark_api.api.deps import EntitlementServiceDep, SessionDep
from watermark_api.api.schemas import (
    IapTransactionPublic,
    IapTransactionsData,
    IapVerifyRequest,
    IapVerifyResponse,
)

router = APIRouter(prefix="/iap", tags=["iap"])


@router.post("/verify", response_model=IapVerifyResponse)
def verify(body: IapVerifyRequest, service: EntitlementServiceDep) -> IapVerifyResponse:
    """
    验证收据并更新权益

    请求路径: POST /v1/iap/verify

    重复提交同一笔交易是安全的：返回成功，creditsAdded 为 0，replayed 为 true。
    """
    result = service.verify_and_apply_purchase(
        install_id=body.install_id,
        platform=body.platform,
        product_id=body.product_id,
        raw_receipt=body.receipt,
    )
    return IapVerifyResponse(
        is_pro=result.status.is_pro,
        credits=result.status.credits,
        credits_added=result.credits_added,
        free_remaining=result.status.free_remaining,
        transaction_id=result.transaction_id,
        replayed=result.replayed,
    )


@router.get("/transactions", response_model=IapTransactionsData)
def transactions(
    session: SessionDep,
    install_id: str = Query(alias="installId", min_length=1, max_length=128),
) -> IapTransactionsData:
    rows = crud.list_transactions(session=session, install_id=install_id)
    data = [
        IapTransactionPublic(
            transaction_id=row.transaction_id,
            original_transaction_id=row.original_transaction_id,
            product_id=row.product_id,
            purchased_at=row.purchased_at,
            created_at=row.created_at,
        )
        for row in rows
    ]
    return IapTransactionsData(data=data, count=len(data))
