"""UPI 支付 API 路由"""

from decimal import Decimal
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Path, Query, UploadFile
from pydantic import ValidationError

from storefront.core.config import settings
from storefront.core.dependencies import get_payment_service
from storefront.core.security import Principal, get_current_principal, require_admin
from storefront.errors import StoreError
from storefront.schemas.order import OrderResponse, OrderSchema, ShippingAddress
from storefront.schemas.payment import UPIInfoResponse, VerifyPaymentRequest
from storefront.services.payment_service import PaymentService, get_upi_info

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/payments",
    tags=["支付"],
    responses={
        400: {"description": "凭证不合法、购物车为空或库存不足"},
        401: {"description": "未登录"},
        500: {"description": "服务器内部错误"}
    }
)


def _parse_shipping_address(raw: Optional[str]) -> Optional[dict]:
    if not raw:
        return None
    try:
        return ShippingAddress.model_validate(json.loads(raw)).model_dump()
    except (ValueError, ValidationError):
        raise HTTPException(status_code=400, detail="Invalid shipping address")


@router.get("/upi-info", response_model=UPIInfoResponse, summary="收款信息")
async def upi_info(
    amount: Optional[Decimal] = Query(None, gt=0, description="订单金额，用于生成支付链接"),
    _: Principal = Depends(get_current_principal),
):
    return {"success": True, "upi_info": get_upi_info(amount)}


@router.post(
    "/create-upi-order",
    response_model=OrderResponse,
    status_code=201,
    summary="上传付款截图并下单",
    description="""multipart 表单：
    - paymentScreenshot: 付款截图（图片，最大 5MB）
    - shippingAddress: 收货地址 JSON 字符串（可选）
    - upiTransactionId: UPI 交易号（可选）
    - notes: 备注（可选）

    订单保持 pending，等待管理员核验付款。
    """,
)
async def create_upi_order(
    paymentScreenshot: Optional[UploadFile] = File(None),
    shippingAddress: Optional[str] = Form(None),
    upiTransactionId: str = Form(""),
    notes: str = Form(""),
    principal: Principal = Depends(get_current_principal),
    service: PaymentService = Depends(get_payment_service),
):
    shipping_address = _parse_shipping_address(shippingAddress)
    try:
        # 多读 1 字节即可判断是否超限
        content = await paymentScreenshot.read(settings.MAX_SCREENSHOT_BYTES + 1) if paymentScreenshot else None
        order = service.create_upi_order(
            principal.user_id,
            content=content,
            content_type=paymentScreenshot.content_type if paymentScreenshot else None,
            filename=paymentScreenshot.filename if paymentScreenshot else None,
            shipping_address=shipping_address,
            upi_transaction_id=upiTransactionId,
            notes=notes,
        )
        return {
            "success": True,
            "message": "Order placed. Payment will be verified shortly.",
            "order": OrderSchema.model_validate(order),
        }
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"UPI 下单失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating UPI order")


@router.put("/{order_id}/verify", response_model=OrderResponse, summary="核验付款（管理员）")
async def verify_payment(
    request: VerifyPaymentRequest,
    order_id: int = Path(..., gt=0),
    _: Principal = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    try:
        order = service.verify_payment(order_id, request.approved)
        message = "Payment verified" if request.approved else "Payment rejected"
        return {"success": True, "message": message, "order": OrderSchema.model_validate(order)}
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"付款核验失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error verifying payment")
