"""购物车 API 路由"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Path

from storefront.core.dependencies import get_cart_service
from storefront.core.security import Principal, get_current_principal
from storefront.errors import StoreError
from storefront.schemas.cart import AddCartItemRequest, CartResponse, CartSchema, UpdateCartItemRequest
from storefront.services.cart_service import CartService

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/cart",
    tags=["购物车"],
    responses={
        400: {"description": "库存不足或数量非法"},
        401: {"description": "未登录"},
        404: {"description": "商品或购物车行不存在"},
        429: {"description": "购物车正在被修改，请稍后重试"},
    }
)


def _cart_view(cart) -> CartSchema:
    if cart is None:
        return CartSchema()
    return CartSchema.model_validate(cart)


@router.get("", response_model=CartResponse, summary="查看购物车")
async def get_cart(
    principal: Principal = Depends(get_current_principal),
    service: CartService = Depends(get_cart_service),
):
    try:
        cart = service.get_cart(principal.user_id)
        return {"success": True, "cart": _cart_view(cart)}
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"查询购物车失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error retrieving cart")


@router.post("/items", response_model=CartResponse, summary="加入购物车")
async def add_cart_item(
    request: AddCartItemRequest,
    principal: Principal = Depends(get_current_principal),
    service: CartService = Depends(get_cart_service),
):
    try:
        cart = service.add_item(principal.user_id, request.product_id, request.quantity)
        return {"success": True, "message": "Item added to cart", "cart": _cart_view(cart)}
    except StoreError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"加入购物车失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error adding item to cart")


@router.put("/items/{product_id}", response_model=CartResponse, summary="修改数量")
async def update_cart_item(
    request: UpdateCartItemRequest,
    product_id: int = Path(..., gt=0),
    principal: Principal = Depends(get_current_principal),
    service: CartService = Depends(get_cart_service),
):
    """数量为 0 时删除该行"""
    try:
        cart = service.update_item(principal.user_id, product_id, request.quantity)
        return {"success": True, "message": "Cart updated", "cart": _cart_view(cart)}
    except StoreError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"修改购物车失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating cart")


@router.delete("/items/{product_id}", response_model=CartResponse, summary="移除商品")
async def remove_cart_item(
    product_id: int = Path(..., gt=0),
    principal: Principal = Depends(get_current_principal),
    service: CartService = Depends(get_cart_service),
):
    try:
        cart = service.remove_item(principal.user_id, product_id)
        return {"success": True, "message": "Item removed from cart", "cart": _cart_view(cart)}
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"移除购物车商品失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error removing item from cart")


@router.delete("", response_model=CartResponse, summary="清空购物车")
async def clear_cart(
    principal: Principal = Depends(get_current_principal),
    service: CartService = Depends(get_cart_service),
):
    try:
        cart = service.clear(principal.user_id)
        return {"success": True, "message": "Cart cleared", "cart": _cart_view(cart)}
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"清空购物车失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error clearing cart")
