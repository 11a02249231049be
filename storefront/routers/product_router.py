"""商品与库存 API 路由"""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query

from storefront.core.dependencies import get_product_service
from storefront.core.security import Principal, require_admin
from storefront.errors import StoreError
from storefront.schemas.product import (
    BatchStockQueryRequest,
    BatchStockResponse,
    CreateProductRequest,
    ProductListResponse,
    ProductResponse,
    ProductSchema,
    SetStockRequest,
    StockResponse,
)
from storefront.services.product_service import ProductService

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/products",
    tags=["商品"],
    responses={
        404: {"description": "商品不存在"},
        422: {"description": "请求验证失败"},
        500: {"description": "服务器内部错误"}
    }
)


@router.get("", response_model=ProductListResponse, summary="商品列表")
async def list_products(
    include_inactive: bool = Query(False, description="是否包含已下架商品"),
    service: ProductService = Depends(get_product_service),
):
    try:
        products = service.list_products(include_inactive=include_inactive)
        return {
            "success": True,
            "products": [ProductSchema.model_validate(p) for p in products],
        }
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"查询商品列表失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error retrieving products")


@router.post(
    "/stock/batch",
    response_model=BatchStockResponse,
    summary="批量查询商品库存",
    description="""批量查询多个商品的库存数量。

    **限制：**
    - 单次最多查询100个商品
    - 不存在的商品库存记为 0
    """,
)
async def batch_get_stocks(
    request: BatchStockQueryRequest = Body(..., description="批量查询请求参数"),
    service: ProductService = Depends(get_product_service),
):
    try:
        stocks = service.batch_get_stocks(request.product_ids)
        return BatchStockResponse(success=True, data=stocks)
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"批量查询库存失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error retrieving stock")


@router.get("/{product_id}", response_model=ProductResponse, summary="商品详情")
async def get_product(
    product_id: int = Path(..., gt=0, description="商品ID"),
    service: ProductService = Depends(get_product_service),
):
    try:
        product = service.get_product(product_id)
        return {"success": True, "product": ProductSchema.model_validate(product)}
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"查询商品失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error retrieving product")


@router.get(
    "/{product_id}/stock",
    response_model=StockResponse,
    summary="查询商品库存",
    description="""查询指定商品的可用库存数量。

    **缓存策略：**
    - 首先查询Redis缓存
    - 缓存未命中则查询数据库
    - 查询结果缓存5分钟，库存变化时失效
    """,
)
async def get_stock(
    product_id: int = Path(..., gt=0, description="商品ID"),
    service: ProductService = Depends(get_product_service),
):
    try:
        stock = service.get_product_stock(product_id)
        return {"success": True, "product_id": product_id, "stock": stock}
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"查询库存失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error retrieving stock")


@router.post("", response_model=ProductResponse, status_code=201, summary="创建商品（管理员）")
async def create_product(
    request: CreateProductRequest,
    _: Principal = Depends(require_admin),
    service: ProductService = Depends(get_product_service),
):
    try:
        product = service.create_product(
            sku=request.sku,
            name=request.name,
            price=request.price,
            stock=request.stock,
            is_active=request.is_active,
        )
        return {"success": True, "message": "Product created", "product": ProductSchema.model_validate(product)}
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"创建商品失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating product")


@router.put("/{product_id}/stock", response_model=ProductResponse, summary="设置库存（管理员）")
async def set_stock(
    request: SetStockRequest,
    product_id: int = Path(..., gt=0, description="商品ID"),
    _: Principal = Depends(require_admin),
    service: ProductService = Depends(get_product_service),
):
    try:
        product = service.set_stock(product_id, request.stock)
        return {"success": True, "message": "Stock updated", "product": ProductSchema.model_validate(product)}
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"设置库存失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating stock")
