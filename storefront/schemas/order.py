from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from storefront.models.order import OrderStatus, PaymentMethod, PaymentStatus
from storefront.schemas.common import BaseResponse
from storefront.schemas.product import ProductBrief


class OrderItemSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: Optional[int]
    product_name: str
    quantity: int
    price: float
    total: float
    product: Optional[ProductBrief] = None


class OrderSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    user_id: Optional[int]
    is_guest_order: bool
    customer_name: str
    customer_email: Optional[str]
    customer_phone: Optional[str]
    shipping_address: Dict[str, Any]
    items: List[OrderItemSchema] = []
    subtotal: float
    shipping: float
    tax: float
    total: float
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    status: OrderStatus
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    upi_transaction_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ShippingAddress(BaseModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("zip_code", "zipCode", "pincode"),
    )
    country: Optional[str] = "India"


# 创建订单请求
class CreateOrderRequest(BaseModel):
    shipping_address: Optional[ShippingAddress] = None
    payment_method: PaymentMethod = PaymentMethod.UPI
    notes: str = ""


class UpdateOrderStatusRequest(BaseModel):
    # 在服务层校验，非法值返回 InvalidStatusError
    status: str
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None


class PaginationSchema(BaseModel):
    current_page: int
    total_pages: int
    total_orders: int
    has_next: bool
    has_prev: bool


class OrderStatsSchema(BaseModel):
    total_orders: int
    pending_orders: int
    confirmed_orders: int
    shipped_orders: int
    delivered_orders: int
    cancelled_orders: int
    total_revenue: float
    recent_orders: List[OrderSchema]


class OrderResponse(BaseResponse):
    order: OrderSchema


class OrderListResponse(BaseResponse):
    orders: List[OrderSchema]


class OrderPageResponse(OrderListResponse):
    pagination: PaginationSchema


class OrderStatsResponse(BaseResponse):
    stats: OrderStatsSchema
