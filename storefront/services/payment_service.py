"""UPI 人工核验支付服务

用户上传付款截图并下单，订单与支付状态保持 pending，
由管理员核验后确认或驳回。
"""

from pathlib import Path
from sqlalchemy import select
from sqlalchemy.orm import Session
from typing import Optional
from urllib.parse import quote
from uuid import uuid4
import logging
import mimetypes
from redis import Redis
from redlock import Redlock

from storefront.core.config import settings
from storefront.errors import NotFoundError, PaymentProofError
from storefront.models.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".heic"}

UPI_INSTRUCTIONS = [
    "Scan the QR code or pay to the UPI ID using any UPI app",
    "Pay the exact order amount",
    "Take a screenshot of the successful payment",
    "Upload the screenshot and submit your order",
    "Your order will be confirmed once the payment is verified",
]


def build_upi_link(amount, upi_id: str = None, merchant_name: str = None,
                   note: str = "Order payment - SRR Farms") -> str:
    upi_id = upi_id or settings.UPI_ID
    merchant_name = merchant_name or settings.UPI_MERCHANT_NAME
    return (
        f"upi://pay?pa={upi_id}&pn={quote(merchant_name)}"
        f"&am={amount}&cu=INR&tn={quote(note)}"
    )


def get_upi_info(amount=None) -> dict:
    """收款信息；传入金额时附带 upi:// 支付链接"""
    return {
        "upi_id": settings.UPI_ID,
        "merchant_name": settings.UPI_MERCHANT_NAME,
        "qr_code_url": settings.UPI_QR_CODE_URL,
        "instructions": list(UPI_INSTRUCTIONS),
        "payment_link": build_upi_link(amount) if amount is not None else None,
    }


class PaymentService:
    """付款凭证上传与核验"""

    def __init__(self, db: Session, redis: Redis = None, rlock: Redlock = None, upload_dir: str = None):
        self.db = db
        self.order_service = OrderService(db, redis, rlock)
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)

    def _validate_screenshot(self, content: Optional[bytes], content_type: Optional[str]) -> None:
        if not content:
            raise PaymentProofError("Please upload payment screenshot")
        if not content_type or not content_type.startswith("image/"):
            raise PaymentProofError("Please select an image file")
        if len(content) > settings.MAX_SCREENSHOT_BYTES:
            limit_mb = settings.MAX_SCREENSHOT_BYTES // (1024 * 1024)
            raise PaymentProofError(f"File size must be less than {limit_mb}MB")

    def _store_screenshot(self, filename: Optional[str], content_type: str, content: bytes) -> Path:
        suffix = Path(filename or "").suffix.lower()
        if suffix not in ALLOWED_IMAGE_SUFFIXES:
            suffix = mimetypes.guess_extension(content_type) or ""
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        path = self.upload_dir / f"{uuid4().hex}{suffix}"
        path.write_bytes(content)
        return path

    def _screenshot_in_use(self, path: Path) -> bool:
        return self.db.execute(
            select(Order.id).where(Order.payment_screenshot == str(path))
        ).first() is not None

    def create_upi_order(
        self,
        user_id: int,
        content: bytes,
        content_type: str,
        filename: str = None,
        shipping_address: Optional[dict] = None,
        upi_transaction_id: str = None,
        notes: str = "",
    ) -> Order:
        """保存付款截图并从购物车创建 UPI 订单

        订单未落库时删除截图；已提交的订单必须保留付款凭证。
        """
        self._validate_screenshot(content, content_type)
        path = self._store_screenshot(filename, content_type, content)

        try:
            order = self.order_service.create_order(
                user_id,
                shipping_address=shipping_address,
                payment_method=PaymentMethod.UPI,
                notes=notes,
                upi_transaction_id=upi_transaction_id,
                payment_screenshot=str(path),
            )
        except Exception:
            if not self._screenshot_in_use(path):
                path.unlink(missing_ok=True)
            raise

        logger.info(f"UPI 订单待核验: order_number={order.order_number}, screenshot={path.name}")
        return order

    def verify_payment(self, order_id: int, approved: bool) -> Order:
        """管理员核验付款：通过则确认订单，否则标记驳回"""
        order = self.db.get(Order, order_id)
        if not order:
            raise NotFoundError("Order not found")
        if order.payment_method != PaymentMethod.UPI or order.payment_status != PaymentStatus.PENDING:
            raise PaymentProofError("Payment is not awaiting verification")

        try:
            if approved:
                order.payment_status = PaymentStatus.VERIFIED
                if order.status == OrderStatus.PENDING:
                    order.status = OrderStatus.CONFIRMED
            else:
                order.payment_status = PaymentStatus.REJECTED
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"付款核验失败: order_id={order_id}, error={str(e)}")
            raise

        logger.info(f"付款核验: order_id={order_id}, approved={approved}")
        return order
