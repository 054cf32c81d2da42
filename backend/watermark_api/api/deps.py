"""
FastAPI 依赖注入模块

提供可复用的依赖项，用于路由处理函数中：
- 数据库会话
- 收据验证器、图像编辑器（外部协作者，测试中可通过 dependency_overrides 替换）
- EntitlementService（把 settings 中的配置注入到服务构造函数）
"""
from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from sqlmodel import Session

from watermark_api.core.config import settings
from watermark_api.core.db import engine
from watermark_api.integrations.apple_receipt import ReceiptVerifier, apple_receipt_verifier
from watermark_api.integrations.image_edit import ImageEditor, ark_image_edit_client
from watermark_api.services.catalog_service import get_catalog
from watermark_api.services.entitlement_service import EntitlementService


def get_db() -> Generator[Session, None, None]:
    """
    获取数据库会话（依赖注入）

    使用 yield 确保会话在请求结束后自动关闭。
    """
    with Session(engine) as session:
        yield session


def get_receipt_verifier() -> ReceiptVerifier:
    return apple_receipt_verifier


def get_image_editor() -> ImageEditor:
    return ark_image_edit_client


SessionDep = Annotated[Session, Depends(get_db)]
ReceiptVerifierDep = Annotated[ReceiptVerifier, Depends(get_receipt_verifier)]
ImageEditorDep = Annotated[ImageEditor, Depends(get_image_editor)]


def get_entitlement_service(
    session: SessionDep, verifier: ReceiptVerifierDep
) -> EntitlementService:
    """
    构造权益服务

    免费额度、开发模式开关、商品目录都在这里从配置读取并注入，
    业务逻辑本身不读取环境变量。
    """
    return EntitlementService(
        session=session,
        free_usage_limit=settings.FREE_USAGE_LIMIT,
        dev_mode=settings.DEV_MODE,
        catalog=get_catalog(),
        verifier=verifier,
        pro_free_remaining=settings.PRO_FREE_REMAINING,
        receipt_excerpt_length=settings.RECEIPT_EXCERPT_LENGTH,
    )


EntitlementServiceDep = Annotated[EntitlementService, Depends(get_entitlement_service)]
