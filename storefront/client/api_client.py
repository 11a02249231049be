"""商城 API 客户端

基于 requests.Session：
- 429 与网络异常按 1s、2s、4s 指数退避重试，耗尽后抛出
  TransientServerError / NetworkUnavailableError
- 错误响应中的 ``error`` 字段还原为 storefront.errors 中的异常
- 401 使会话失效（Token 与资料缓存一并清除）
"""

import json
import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from storefront.client.session import ClientSession
from storefront.errors import (
    ERRORS_BY_CODE,
    ApiError,
    NetworkUnavailableError,
    StoreError,
    TransientServerError,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api"
INITIAL_BACKOFF_SECONDS = 1.0


class StorefrontClient:
    """商城后端的同步客户端"""

    def __init__(
        self,
        base_url: str,
        session: Optional[ClientSession] = None,
        max_retries: int = 3,
        timeout: float = 10,
        http: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or ClientSession()
        self.max_retries = max_retries
        self.timeout = timeout
        self.http = http or requests.Session()
        self._sleep = sleep

    # ---------- 底层请求 ----------

    def _url(self, path: str) -> str:
        return f"{self.base_url}{API_PREFIX}{path}"

    def _headers(self) -> Dict[str, str]:
        headers = {}
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        return headers

    def request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """发送请求，处理重试与错误映射，返回 JSON 响应体"""
        url = self._url(path)
        delay = INITIAL_BACKOFF_SECONDS
        attempt = 0

        while True:
            try:
                response = self.http.request(
                    method, url, headers=self._headers(), timeout=self.timeout, **kwargs
                )
            except (requests.ConnectionError, requests.Timeout) as e:
                if attempt >= self.max_retries:
                    logger.error(f"{method} {path} 网络不可用，重试已耗尽: {e}")
                    raise NetworkUnavailableError()
                logger.warning(f"{method} {path} 网络错误，{delay:.0f}s 后重试 ({attempt + 1}/{self.max_retries})")
            else:
                if response.status_code != 429:
                    return self._handle_response(response)
                if attempt >= self.max_retries:
                    logger.error(f"{method} {path} 持续限流，重试已耗尽")
                    raise TransientServerError()
                logger.warning(f"{method} {path} 被限流，{delay:.0f}s 后重试 ({attempt + 1}/{self.max_retries})")

            self._sleep(delay)
            delay *= 2
            attempt += 1

    def _handle_response(self, response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.ok:
            return body

        if response.status_code == 401:
            self.session.clear()

        raise self._error_from_body(response.status_code, body)

    @staticmethod
    def _error_from_body(status_code: int, body: Dict[str, Any]) -> StoreError:
        message = body.get("message") if isinstance(body, dict) else None
        code = body.get("error") if isinstance(body, dict) else None
        cls = ERRORS_BY_CODE.get(code)
        if cls is None:
            return ApiError(message=message or f"Request failed with status {status_code}", status_code=status_code)
        return cls(message=message)

    # ---------- 会话 ----------

    def get_profile(self, force_refresh: bool = False) -> Dict[str, Any]:
        """读穿缓存：优先返回会话中的用户资料"""
        if self.session.user is not None and not force_refresh:
            return self.session.user
        body = self.request("GET", "/auth/me")
        self.session.user = body["user"]
        return self.session.user

    def update_profile(self, **fields) -> Dict[str, Any]:
        """修改资料（full_name、phone、address），并刷新会话中的用户缓存"""
        body = self.request("PUT", "/auth/profile", json=fields)
        self.session.user = body["user"]
        return self.session.user

    def logout(self) -> None:
        self.session.clear()

    def health(self, timeout: float = 5) -> bool:
        """后端是否可用：/health 返回 2xx 即可用，不重试"""
        try:
            response = self.http.get(f"{self.base_url}/health", timeout=timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning(f"后端不可用: {e}")
            return False
        if not response.ok:
            logger.warning(f"后端健康检查失败: status={response.status_code}")
        return response.ok

    # ---------- 商品 ----------

    def list_products(self) -> list:
        return self.request("GET", "/products")["products"]

    def get_stock(self, product_id: int) -> int:
        return self.request("GET", f"/products/{product_id}/stock")["stock"]

    # ---------- 购物车 ----------

    def get_cart(self) -> Dict[str, Any]:
        return self.request("GET", "/cart")["cart"]

    def add_to_cart(self, product_id: int, quantity: int = 1) -> Dict[str, Any]:
        body = self.request("POST", "/cart/items", json={"product_id": product_id, "quantity": quantity})
        return body["cart"]

    def update_cart_item(self, product_id: int, quantity: int) -> Dict[str, Any]:
        body = self.request("PUT", f"/cart/items/{product_id}", json={"quantity": quantity})
        return body["cart"]

    def remove_cart_item(self, product_id: int) -> Dict[str, Any]:
        return self.request("DELETE", f"/cart/items/{product_id}")["cart"]

    def clear_cart(self) -> Dict[str, Any]:
        return self.request("DELETE", "/cart")["cart"]

    # ---------- 订单 ----------

    def create_order(
        self,
        shipping_address: Optional[Dict[str, Any]] = None,
        payment_method: str = "upi",
        notes: str = "",
    ) -> Dict[str, Any]:
        payload = {"payment_method": payment_method, "notes": notes}
        if shipping_address is not None:
            payload["shipping_address"] = shipping_address
        return self.request("POST", "/orders", json=payload)["order"]

    def list_orders(self) -> list:
        return self.request("GET", "/orders")["orders"]

    def get_order(self, order_id: int) -> Dict[str, Any]:
        return self.request("GET", f"/orders/{order_id}")["order"]

    # ---------- 管理员 ----------

    def admin_list_orders(self, page: int = 1, limit: int = 50, **filters) -> Dict[str, Any]:
        """filters: status, search, startDate, endDate"""
        params = {"page": page, "limit": limit}
        params.update({k: v for k, v in filters.items() if v is not None})
        body = self.request("GET", "/orders/admin/all", params=params)
        return {"orders": body["orders"], "pagination": body["pagination"]}

    def admin_order_stats(self) -> Dict[str, Any]:
        return self.request("GET", "/orders/admin/stats")["stats"]

    def update_order_status(
        self,
        order_id: int,
        status: str,
        tracking_number: Optional[str] = None,
        estimated_delivery: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {"status": status}
        if tracking_number is not None:
            payload["tracking_number"] = tracking_number
        if estimated_delivery is not None:
            payload["estimated_delivery"] = estimated_delivery
        return self.request("PUT", f"/orders/{order_id}/status", json=payload)["order"]

    # ---------- UPI 支付 ----------

    def get_upi_info(self, amount=None) -> Dict[str, Any]:
        params = {"amount": amount} if amount is not None else None
        return self.request("GET", "/payments/upi-info", params=params)["upi_info"]

    def create_upi_order(
        self,
        screenshot: bytes,
        filename: str = "payment.png",
        content_type: str = "image/png",
        shipping_address: Optional[Dict[str, Any]] = None,
        upi_transaction_id: str = "",
        notes: str = "",
    ) -> Dict[str, Any]:
        data = {"upiTransactionId": upi_transaction_id, "notes": notes}
        if shipping_address is not None:
            data["shippingAddress"] = json.dumps(shipping_address)
        files = {"paymentScreenshot": (filename, screenshot, content_type)}
        return self.request("POST", "/payments/create-upi-order", data=data, files=files)["order"]

    def verify_payment(self, order_id: int, approved: bool = True) -> Dict[str, Any]:
        return self.request("PUT", f"/payments/{order_id}/verify", json={"approved": approved})["order"]
