"""
自定义异常模块

定义应用特定的异常类，用于统一的错误处理。
所有业务异常都继承自 AppError，在 main.py 中有统一的异常处理器，
渲染为 {"code": ..., "message": ..., "data": null}。

code 是稳定的字符串词汇（如 "PAYWALL"），移动端据此区分错误类型。
"""
from __future__ import annotations


class AppError(Exception):
    """
    应用自定义异常类

    用于业务逻辑中的错误处理，包含：
    - code: 业务错误码（用于前端区分不同错误）
    - message: 错误消息（用户友好的提示）
    - status_code: HTTP 状态码（400, 402, 500 等）

    子类通过类属性提供默认值，构造时可以覆盖：
        raise InvalidReceipt("Invalid receipt status: 21003")
    """

    code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InvalidArgument(AppError):
    """请求字段缺失或格式错误"""

    code = "INVALID_REQUEST"
    message = "Invalid request"
    status_code = 400


class UnsupportedPlatform(AppError):
    code = "INVALID_PLATFORM"
    message = "Only iOS platform is supported"
    status_code = 400


class UnknownProduct(AppError):
    code = "INVALID_PRODUCT"
    message = "Invalid product ID"
    status_code = 400


class InvalidReceipt(AppError):
    """平台拒绝了收据，或收据中找不到声明的商品"""

    code = "INVALID_RECEIPT"
    message = "Invalid receipt"
    status_code = 400


class PaywallExceeded(AppError):
    """
    付费墙拒绝

    这是唯一使用 402 的错误，客户端据此弹出购买提示而不是通用错误。
    """

    code = "PAYWALL"
    message = "Free quota used. Please purchase credits or Pro."
    status_code = 402


class VerificationTransportFailure(AppError):
    """与 Apple 验证服务器通信失败（网络错误/超时），客户端可自行重试"""

    code = "VERIFICATION_FAILED"
    message = "IAP verification failed"
    status_code = 500


class NotFound(AppError):
    # get-or-create 之后不应该出现，出现即视为内部错误
    code = "INTERNAL_ERROR"
    message = "Entitlement not found"
    status_code = 500


class Conflict(AppError):
    code = "CONFLICT"
    message = "Transaction already recorded"
    status_code = 409


class InvalidBBox(AppError):
    code = "INVALID_BBOX"
    message = "Invalid bbox coordinates"
    status_code = 400


class ImageTooLarge(AppError):
    code = "IMAGE_TOO_LARGE"
    message = "Image too large"
    status_code = 413


class ProcessingFailed(AppError):
    code = "PROCESSING_FAILED"
    message = "Image processing failed"
    status_code = 500
