from decimal import Decimal
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.common import BaseResponse


class ProductBrief(BaseModel):
    """订单/购物车行里展示的商品信息"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    sku: str
    name: str
    price: float


class ProductSchema(ProductBrief):
    stock: int
    is_active: bool


class CreateProductRequest(BaseModel):
    sku: str = Field(..., min_length=1, max_length=64, examples=["SRR-MANGO-1KG"])
    name: str = Field(..., min_length=1, max_length=255, examples=["Banganapalli Mango 1kg"])
    price: Decimal = Field(..., gt=0, examples=[250])
    stock: int = Field(0, ge=0)
    is_active: bool = True


class SetStockRequest(BaseModel):
    stock: int = Field(..., ge=0, description="新的可售库存")


class BatchStockQueryRequest(BaseModel):
    """批量查询库存请求"""
    product_ids: List[int] = Field(
        ...,
        min_length=1,
        max_length=100,
        description="商品ID列表",
        examples=[[1, 2, 3]]
    )


class ProductResponse(BaseResponse):
    product: ProductSchema


class ProductListResponse(BaseResponse):
    products: List[ProductSchema]


class StockResponse(BaseResponse):
    """单个商品库存响应"""
    product_id: int
    stock: int = Field(..., ge=0)


class BatchStockResponse(BaseResponse):
    """批量库存查询响应"""
    data: Dict[int, int] = Field(
        ...,
        description="商品ID到库存数量的映射"
    )
