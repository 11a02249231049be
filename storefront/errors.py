"""商城错误体系

服务层抛出领域异常，API 层统一转换为
``{"success": false, "message": ..., "error": <code>}`` 响应；
客户端根据 ``error`` 字段还原为同名异常。
"""


class StoreError(Exception):
    """所有业务异常的基类"""

    status_code = 500
    code = "StoreError"
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class EmptyCartError(StoreError):
    status_code = 400
    code = "EmptyCartError"
    default_message = "Cart is empty"


class InsufficientStockError(StoreError):
    """某个商品可用库存不足"""

    status_code = 400
    code = "InsufficientStockError"
    default_message = "Insufficient stock"

    def __init__(self, product_name: str = None, message: str = None):
        self.product_name = product_name
        if message is None and product_name:
            message = f"Insufficient stock for {product_name}"
        super().__init__(message)


class InvalidStatusError(StoreError):
    status_code = 400
    code = "InvalidStatusError"
    default_message = "Invalid status"


class PaymentProofError(StoreError):
    """支付凭证缺失、格式或大小不合法，或订单不可核验"""

    status_code = 400
    code = "PaymentProofError"
    default_message = "Invalid payment proof"


class UnauthenticatedError(StoreError):
    status_code = 401
    code = "UnauthenticatedError"
    default_message = "Authentication required"


class ForbiddenError(StoreError):
    status_code = 403
    code = "ForbiddenError"
    default_message = "Admin access required"


class NotFoundError(StoreError):
    status_code = 404
    code = "NotFoundError"
    default_message = "Resource not found"


class CartBusyError(StoreError):
    """购物车锁被占用，可稍后重试"""

    status_code = 429
    code = "CartBusyError"
    default_message = "Cart is being updated, please retry"


class TransientServerError(StoreError):
    """限流或暂时不可用（客户端重试耗尽后抛出）"""

    status_code = 429
    code = "TransientServerError"
    default_message = "Server is busy. Please wait a moment and try again."


class NetworkUnavailableError(StoreError):
    """后端不可达"""

    status_code = 503
    code = "NetworkUnavailableError"
    default_message = "Backend server is not available. Please try again later."


class ApiError(StoreError):
    """客户端收到无法归类的错误响应"""

    code = "ApiError"

    def __init__(self, message: str = None, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        EmptyCartError,
        InsufficientStockError,
        InvalidStatusError,
        PaymentProofError,
        UnauthenticatedError,
        ForbiddenError,
        NotFoundError,
        CartBusyError,
        TransientServerError,
        NetworkUnavailableError,
    )
}
