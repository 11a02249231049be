"""订单 API 路由"""

from datetime import datetime
from typing import Optional
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query

from storefront.core.dependencies import get_order_admin_service, get_order_service
from storefront.core.security import Principal, get_current_principal, require_admin
from storefront.errors import StoreError
from storefront.schemas.order import (
    CreateOrderRequest,
    OrderListResponse,
    OrderPageResponse,
    OrderResponse,
    OrderSchema,
    OrderStatsResponse,
    UpdateOrderStatusRequest,
)
from storefront.services.order_admin_service import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, OrderAdminService
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/orders",
    tags=["订单"],
    responses={
        400: {"description": "购物车为空、库存不足或状态非法"},
        401: {"description": "未登录"},
        403: {"description": "需要管理员权限"},
        404: {"description": "订单不存在"},
        429: {"description": "购物车正在被修改，请稍后重试"},
        500: {"description": "服务器内部错误"}
    }
)


def _serialize(orders):
    return [OrderSchema.model_validate(order) for order in orders]


@router.get("", response_model=OrderListResponse, summary="我的订单")
async def list_my_orders(
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    """当前用户的订单，最新在前"""
    try:
        orders = service.list_user_orders(principal.user_id)
        return {"success": True, "orders": _serialize(orders)}
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"查询订单失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error retrieving orders")


@router.get("/admin/all", response_model=OrderPageResponse, summary="全部订单（管理员）")
async def list_all_orders(
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="每页数量"),
    status: Optional[str] = Query(None, description="状态过滤，all 表示全部"),
    search: Optional[str] = Query(None, description="订单号/姓名/邮箱/电话"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    _: Principal = Depends(require_admin),
    service: OrderAdminService = Depends(get_order_admin_service),
):
    try:
        result = service.list_orders(
            page=page,
            limit=limit,
            status=status,
            search=search,
            start_date=start_date,
            end_date=end_date,
        )
        return {
            "success": True,
            "orders": _serialize(result["orders"]),
            "pagination": result["pagination"],
        }
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"查询全部订单失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error retrieving orders")


@router.get("/admin/stats", response_model=OrderStatsResponse, summary="订单统计（管理员）")
async def order_stats(
    _: Principal = Depends(require_admin),
    service: OrderAdminService = Depends(get_order_admin_service),
):
    """各状态订单数、营收（confirmed/shipped/delivered）与最近 5 单"""
    try:
        stats = service.get_stats()
        stats["recent_orders"] = _serialize(stats["recent_orders"])
        return {"success": True, "stats": stats}
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"查询订单统计失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error retrieving order statistics")


@router.get("/{order_id}", response_model=OrderResponse, summary="订单详情")
async def get_order(
    order_id: int = Path(..., gt=0, description="订单ID"),
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    try:
        order = service.get_user_order(principal.user_id, order_id)
        return {"success": True, "order": OrderSchema.model_validate(order)}
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"查询订单详情失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error retrieving order")


@router.post(
    "",
    response_model=OrderResponse,
    status_code=201,
    summary="从购物车下单",
    description="""校验购物车全部商品库存后创建订单。

    **保证：**
    - 库存扣减为带条件的原子更新，不会超卖
    - 任一商品库存不足时不产生任何修改
    - 成功后清空购物车
    """,
)
async def create_order(
    request: Optional[CreateOrderRequest] = Body(None),
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    request = request or CreateOrderRequest()
    try:
        order = service.create_order(
            principal.user_id,
            shipping_address=request.shipping_address.model_dump() if request.shipping_address else None,
            payment_method=request.payment_method,
            notes=request.notes,
        )
        return {
            "success": True,
            "message": "Order created successfully",
            "order": OrderSchema.model_validate(order),
        }
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"创建订单失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating order")


@router.put("/{order_id}/status", response_model=OrderResponse, summary="更新订单状态（管理员）")
async def update_order_status(
    request: UpdateOrderStatusRequest,
    order_id: int = Path(..., gt=0, description="订单ID"),
    _: Principal = Depends(require_admin),
    service: OrderAdminService = Depends(get_order_admin_service),
):
    try:
        order = service.update_status(
            order_id,
            request.status,
            tracking_number=request.tracking_number,
            estimated_delivery=request.estimated_delivery,
        )
        return {
            "success": True,
            "message": "Order status updated",
            "order": OrderSchema.model_validate(order),
        }
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"更新订单状态失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating order status")
