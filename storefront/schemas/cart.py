from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.common import BaseResponse
from storefront.schemas.product import ProductBrief


class CartItemSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    product: Optional[ProductBrief] = None
    quantity: int
    price: float
    total: float


class CartSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    items: List[CartItemSchema] = []
    subtotal: float = 0
    item_count: int = 0


class AddCartItemRequest(BaseModel):
    product_id: int = Field(..., gt=0, description="商品ID")
    quantity: int = Field(1, ge=1, le=10000, description="数量")


class UpdateCartItemRequest(BaseModel):
    # 0 表示删除该行
    quantity: int = Field(..., ge=0, le=10000, description="新的数量")


class CartResponse(BaseResponse):
    cart: CartSchema
