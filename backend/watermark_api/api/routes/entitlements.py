"""
权益路由模块

GET /v1/entitlements?installId=... 查询某个安装的权益状态。
第一次查询会创建一条全零记录，不会返回 404。
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from watermark_api.api.deps import EntitlementServiceDep
from watermark_api.api.schemas import EntitlementData

router = APIRouter(tags=["entitlements"])


@router.get("/entitlements", response_model=EntitlementData)
def get_entitlements(
    service: EntitlementServiceDep,
    install_id: str = Query(alias="installId", min_length=1, max_length=128),
) -> EntitlementData:
    """
    获取权益状态

    请求路径: GET /v1/entitlements?installId=xxx

    Returns:
        EntitlementData: installId, isPro, freeRemaining, credits
    """
    status = service.get_status(install_id)
    return EntitlementData(
        install_id=status.install_id,
        is_pro=status.is_pro,
        free_remaining=status.free_remaining,
        credits=status.credits,
    )
