"""
权益服务

编排权益存储、交易账本与收据验证器：
- 查询权益状态（get-or-create）
- 付费墙授权与成功后提交用量
- 验证购买并恰好一次地入账

所有配置（免费额度、开发模式、商品目录）都通过构造函数注入，
这里不读取全局 settings。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlmodel import Session

from watermark_api import crud
from watermark_api.api.errors import (
    Conflict,
    InvalidReceipt,
    PaywallExceeded,
    UnknownProduct,
    UnsupportedPlatform,
)
from watermark_api.enums import Platform, ProductEffectType, UsageSource
from watermark_api.integrations.apple_receipt import ReceiptVerifier
from watermark_api.models import Entitlement, IapTransaction
from watermark_api.services.catalog_service import ProductEffect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntitlementStatus:
    install_id: str
    is_pro: bool
    free_remaining: int
    credits: int


@dataclass
class UsageGrant:
    """
    一次已授权的使用

    source 在授权时确定，只在下游编辑成功后通过 commit_usage 提交一次；
    提交时若该来源已被并发请求用完，source 会改为实际扣减的来源。
    """
    install_id: str
    source: UsageSource
    committed: bool = field(default=False)


@dataclass(frozen=True)
class PurchaseResult:
    status: EntitlementStatus
    transaction_id: str
    product_id: str
    credits_added: int
    pro_granted: bool
    replayed: bool


class EntitlementService:
    def __init__(
        self,
        *,
        session: Session,
        free_usage_limit: int,
        dev_mode: bool,
        catalog: dict[str, ProductEffect],
        verifier: ReceiptVerifier,
        pro_free_remaining: int = 999,
        receipt_excerpt_length: int = 500,
    ) -> None:
        self.session = session
        self.free_usage_limit = free_usage_limit
        self.dev_mode = dev_mode
        self.catalog = catalog
        self.verifier = verifier
        self.pro_free_remaining = pro_free_remaining
        self.receipt_excerpt_length = receipt_excerpt_length

    def _status(self, entitlement: Entitlement) -> EntitlementStatus:
        if entitlement.is_pro:
            free_remaining = self.pro_free_remaining
        else:
            free_remaining = max(0, self.free_usage_limit - entitlement.free_used_count)
        return EntitlementStatus(
            install_id=entitlement.install_id,
            is_pro=entitlement.is_pro,
            free_remaining=free_remaining,
            credits=entitlement.credits,
        )

    def get_status(self, install_id: str) -> EntitlementStatus:
        entitlement = crud.get_or_create_entitlement(session=self.session, install_id=install_id)
        return self._status(entitlement)

    def authorize_usage(self, install_id: str) -> UsageGrant:
        """
        付费墙检查，按顺序：开发模式 -> Pro -> 点数 -> 免费额度 -> 拒绝

        不修改任何计数器；扣除哪一项在这里确定，由 commit_usage 在成功后提交。

        Raises:
            PaywallExceeded: 免费额度和点数都已用完且不是 Pro
        """
        if self.dev_mode:
            logger.info(f"DEV_MODE: bypassing paywall for install {install_id}")
            return UsageGrant(install_id=install_id, source=UsageSource.bypass)

        entitlement = crud.get_or_create_entitlement(session=self.session, install_id=install_id)
        if entitlement.is_pro:
            return UsageGrant(install_id=install_id, source=UsageSource.pro)
        if entitlement.credits > 0:
            return UsageGrant(install_id=install_id, source=UsageSource.credit)
        if entitlement.free_used_count < self.free_usage_limit:
            return UsageGrant(install_id=install_id, source=UsageSource.free)
        raise PaywallExceeded()

    def _consume(self, install_id: str, source: UsageSource) -> bool:
        if source == UsageSource.free:
            return crud.consume_free_use(
                session=self.session, install_id=install_id, limit=self.free_usage_limit
            )
        return crud.consume_credit(session=self.session, install_id=install_id)

    def commit_usage(self, grant: UsageGrant) -> None:
        """
        提交一次成功的使用

        同一个 grant 只提交一次。扣减是带条件的原子更新；
        授权时选定的来源已被并发请求占用时，改用另一种仍有余量的来源
        （点数 <-> 免费额度），两者都用完才抛出 PaywallExceeded，不会扣成负数。
        """
        if grant.committed:
            return

        if grant.source in (UsageSource.free, UsageSource.credit):
            fallback = UsageSource.credit if grant.source == UsageSource.free else UsageSource.free
            if not self._consume(grant.install_id, grant.source):
                logger.info(
                    f"Usage commit for install {grant.install_id} lost {grant.source.value} "
                    f"to a concurrent request, trying {fallback.value}"
                )
                if not self._consume(grant.install_id, fallback):
                    logger.warning(f"Usage commit for install {grant.install_id} found nothing left to consume")
                    raise PaywallExceeded()
                grant.source = fallback
        grant.committed = True

    def verify_and_apply_purchase(
        self, *, install_id: str, platform: str, product_id: str, raw_receipt: str
    ) -> PurchaseResult:
        """
        验证收据并恰好一次地应用商品效果

        账本插入与权益修改在同一个事务中提交；交易已存在（重放）时两者都跳过。

        Raises:
            UnsupportedPlatform: platform 不是 ios
            UnknownProduct: 商品不在目录中
            InvalidReceipt: 平台拒绝收据或收据中没有该商品
            VerificationTransportFailure: 与验证服务器通信失败
        """
        if platform != Platform.ios.value:
            raise UnsupportedPlatform()

        effect = self.catalog.get(product_id)
        if effect is None:
            valid = ", ".join(sorted(self.catalog))
            raise UnknownProduct(f"Invalid product ID. Valid products: {valid}")

        verification = self.verifier.verify(receipt=raw_receipt, product_id=product_id)
        if not verification.valid or not verification.transaction_id:
            raise InvalidReceipt(verification.reason or "Invalid receipt")
        transaction_id = verification.transaction_id

        crud.get_or_create_entitlement(session=self.session, install_id=install_id)

        replayed = crud.transaction_exists(session=self.session, transaction_id=transaction_id)
        if not replayed:
            replayed = not self._record_and_apply(
                install_id=install_id,
                product_id=product_id,
                effect=effect,
                raw_receipt=raw_receipt,
                transaction_id=transaction_id,
                original_transaction_id=verification.original_transaction_id,
                purchased_at=verification.purchased_at,
            )

        if replayed:
            logger.info(f"Transaction {transaction_id} already applied, skipping (install {install_id})")

        entitlement = crud.get_or_create_entitlement(session=self.session, install_id=install_id)
        return PurchaseResult(
            status=self._status(entitlement),
            transaction_id=transaction_id,
            product_id=product_id,
            credits_added=0 if replayed else effect.credits,
            pro_granted=not replayed and effect.type == ProductEffectType.grant_pro,
            replayed=replayed,
        )

    def _record_and_apply(
        self,
        *,
        install_id: str,
        product_id: str,
        effect: ProductEffect,
        raw_receipt: str,
        transaction_id: str,
        original_transaction_id: str | None,
        purchased_at: str | None,
    ) -> bool:
        """写入账本并应用效果（单个事务）。并发请求抢先入账时返回 False"""
        tx = IapTransaction(
            transaction_id=transaction_id,
            original_transaction_id=original_transaction_id or transaction_id,
            product_id=product_id,
            install_id=install_id,
            purchased_at=purchased_at,
            raw_receipt_excerpt=raw_receipt[: self.receipt_excerpt_length],
        )
        try:
            crud.record_transaction(session=self.session, transaction=tx)
        except Conflict:
            return False

        if effect.type == ProductEffectType.grant_pro:
            crud.apply_entitlement_update(
                session=self.session, install_id=install_id, is_pro=True, commit=False
            )
        else:
            crud.apply_entitlement_update(
                session=self.session, install_id=install_id, credits_delta=effect.credits, commit=False
            )
        self.session.commit()
        logger.info(
            f"Applied transaction {transaction_id} ({product_id}, {effect.type.value}) "
            f"to install {install_id}"
        )
        return True
