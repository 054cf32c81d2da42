"""
Apple App Store 收据验证集成模块

调用 Apple 的 verifyReceipt 接口验证客户端提交的收据，
并从中提取声明商品对应的交易记录。

验证流程：
1. 先请求生产环境接口
2. 若返回 21007（这是沙盒收据），再请求一次沙盒接口，以沙盒结果为准
3. status != 0 视为验证失败（不是异常）
4. 在 receipt.in_app 中查找声明的商品（多条时取购买时间最新的），找不到再查 latest_receipt_info

网络错误、超时、非 2xx 响应属于传输失败，抛出 VerificationTransportFailure，
除沙盒回退外不做任何重试，由客户端决定是否重试。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx

from watermark_api.api.errors import VerificationTransportFailure
from watermark_api.core.config import settings

logger = logging.getLogger(__name__)

# Apple 保留状态码：生产环境收到了沙盒收据
SANDBOX_RECEIPT_STATUS = 21007


@dataclass(frozen=True)
class ReceiptVerification:
    """
    收据验证结果数据类

    valid 为 True 时交易字段有效；为 False 时 reason 给出原因。
    """
    valid: bool
    transaction_id: str | None = None
    original_transaction_id: str | None = None
    product_id: str | None = None
    purchased_at: str | None = None  # ISO-8601，平台未返回时为 None
    reason: str | None = None

    @classmethod
    def invalid(cls, reason: str) -> ReceiptVerification:
        return cls(valid=False, reason=reason)


class ReceiptVerifier(Protocol):
    """收据验证器接口（EntitlementService 依赖的外部协作者）"""

    def verify(self, *, receipt: str, product_id: str) -> ReceiptVerification: ...


def _ms_to_iso(ms: Any) -> str | None:
    if ms is None or ms == "":
        return None
    try:
        dt = datetime.fromtimestamp(int(ms) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        logger.warning(f"Ignoring unusable purchase_date_ms: {ms!r}")
        return None
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _purchase_time_ms(purchase: dict[str, Any]) -> int:
    try:
        return int(purchase.get("purchase_date_ms") or -1)
    except (TypeError, ValueError):
        return -1


def _newest_match(purchases: Any, product_id: str) -> dict[str, Any] | None:
    # 消耗型商品可能在同一张收据里出现多次，取购买时间最新的一条
    matches = [
        p for p in purchases or []
        if isinstance(p, dict) and p.get("product_id") == product_id
    ]
    if not matches:
        return None
    return max(matches, key=_purchase_time_ms)


def _find_purchase(result: dict[str, Any], product_id: str) -> dict[str, Any] | None:
    receipt = result.get("receipt") or {}
    purchase = _newest_match(receipt.get("in_app"), product_id)
    if purchase is not None:
        return purchase
    # 续订/重新处理过的收据，交易可能只出现在 latest_receipt_info 中
    return _newest_match(result.get("latest_receipt_info"), product_id)


class AppleReceiptVerifier:
    """
    Apple verifyReceipt 客户端

    文档：https://developer.apple.com/documentation/appstorereceipts/verifyreceipt
    """

    def __init__(
        self,
        *,
        shared_secret: str | None = None,
        verify_url: str | None = None,
        sandbox_verify_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._shared_secret = shared_secret if shared_secret is not None else settings.APPLE_SHARED_SECRET
        self._verify_url = verify_url or settings.APPLE_VERIFY_URL
        self._sandbox_verify_url = sandbox_verify_url or settings.APPLE_SANDBOX_VERIFY_URL
        self._timeout = timeout or settings.APPLE_VERIFY_TIMEOUT_SECONDS

    def _post(self, client: httpx.Client, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = client.post(url, json=payload, headers={"Content-Type": "application/json"})
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Apple receipt verification request to {url} failed: {e}")
            raise VerificationTransportFailure(f"Apple verification unavailable: {e}") from e
        if not isinstance(data, dict):
            raise VerificationTransportFailure("Apple verification returned an unexpected body")
        return data

    def verify(self, *, receipt: str, product_id: str) -> ReceiptVerification:
        """
        验证收据并提取声明商品的交易

        Args:
            receipt: 客户端提交的 base64 收据
            product_id: 客户端声明购买的商品 ID

        Returns:
            ReceiptVerification: 验证结果（失败时 valid=False，不抛异常）

        Raises:
            VerificationTransportFailure: 与 Apple 通信失败时
        """
        payload = {
            "receipt-data": receipt,
            "password": self._shared_secret,
            "exclude-old-transactions": True,
        }
        with httpx.Client(timeout=self._timeout) as client:
            result = self._post(client, self._verify_url, payload)
            if result.get("status") == SANDBOX_RECEIPT_STATUS:
                logger.info("Sandbox receipt detected, retrying against sandbox endpoint")
                result = self._post(client, self._sandbox_verify_url, payload)

        status = result.get("status")
        if status != 0:
            logger.warning(f"Apple rejected receipt with status {status}")
            return ReceiptVerification.invalid(f"Invalid receipt status: {status}")

        purchase = _find_purchase(result, product_id)
        if purchase is None:
            return ReceiptVerification.invalid(f"{product_id} purchase not found")

        transaction_id = str(purchase.get("transaction_id") or "")
        if not transaction_id:
            return ReceiptVerification.invalid(f"{product_id} purchase has no transaction_id")
        original_transaction_id = str(purchase.get("original_transaction_id") or transaction_id)

        return ReceiptVerification(
            valid=True,
            transaction_id=transaction_id,
            original_transaction_id=original_transaction_id,
            product_id=product_id,
            purchased_at=_ms_to_iso(purchase.get("purchase_date_ms")),
        )


# 全局客户端实例
apple_receipt_verifier = AppleReceiptVerifier()
