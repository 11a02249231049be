"""下单服务实现

购物车 -> 订单的转换在一个数据库事务内完成：
校验全部行库存、写入订单、按商品条件扣减库存、清空购物车。
任一步失败整体回滚，不留下部分结果。
"""

from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from typing import Dict, Iterable, List, Optional, Tuple
import logging
import secrets
import string
import time
from redis import Redis
from redlock import Redlock

from storefront.core.config import settings
from storefront.core.locks import cart_lock
from storefront.errors import EmptyCartError, InsufficientStockError, NotFoundError
from storefront.models.cart import Cart
from storefront.models.order import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus
from storefront.models.product import Product
from storefront.models.user import User
from storefront.services.product_service import invalidate_stock_cache

logger = logging.getLogger(__name__)

ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits
ORDER_NUMBER_SUFFIX_LENGTH = 5
ORDER_NUMBER_ATTEMPTS = 5


def compute_totals(subtotal) -> Tuple[Decimal, Decimal, Decimal]:
    """计算运费、税费和总价

    税费为小计的 TAX_RATE，四舍五入到整数货币单位。
    """
    subtotal = Decimal(str(subtotal))
    shipping = Decimal(settings.SHIPPING_FEE)
    tax = (subtotal * Decimal(str(settings.TAX_RATE))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return shipping, tax, subtotal + shipping + tax


def generate_order_number(timestamp_ms: int = None) -> str:
    """ORD-<毫秒时间戳>-<5位大写字母数字>"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(ORDER_NUMBER_SUFFIX_LENGTH))
    return f"ORD-{timestamp_ms}-{suffix}"


def check_stock(lines: Iterable[Tuple[Product, int]]) -> Dict[int, int]:
    """校验每个商品的可用库存，不修改任何状态

    同一商品的数量先合并再比较；下架商品按库存 0 处理。
    返回 {product_id: 合并后的数量}，即随后要扣减的集合。
    """
    requested: Dict[int, int] = {}
    products: Dict[int, Product] = {}
    for product, quantity in lines:
        requested[product.id] = requested.get(product.id, 0) + quantity
        products[product.id] = product

    for product_id, quantity in requested.items():
        product = products[product_id]
        available = product.stock if product.is_active else 0
        if available < quantity:
            raise InsufficientStockError(product.name)

    return requested


def build_shipping_address(shipping_address: Optional[dict], user: User) -> dict:
    """下单地址快照：优先使用请求里的地址，否则使用用户默认地址"""
    if shipping_address:
        address = dict(shipping_address)
        zip_code = address.get("zip_code") or address.get("zipCode") or address.get("pincode")
        address["fullAddress"] = (
            f"{address.get('street')}, {address.get('city')}, {address.get('state')} - {zip_code}"
        )
        return address

    return {
        "street": user.street or "Not provided",
        "city": user.city or "Not provided",
        "state": user.state or "Not provided",
        "pincode": user.pincode or "000000",
        "country": user.country or "India",
        "fullAddress": (
            f"{user.street or 'Address'}, {user.city or 'City'}, "
            f"{user.state or 'State'} - {user.pincode or '000000'}"
        ),
    }


class OrderService:
    """下单与用户订单查询"""

    def __init__(self, db: Session, redis: Redis = None, rlock: Redlock = None):
        self.db = db
        self.redis = redis
        self.rlock = rlock

    def _new_order_number(self) -> str:
        # 数据库唯一约束兜底
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            number = generate_order_number()
            exists = self.db.execute(
                select(Order.id).where(Order.order_number == number)
            ).first()
            if not exists:
                return number
            logger.warning(f"订单号冲突，重新生成: {number}")
        raise RuntimeError("Unable to allocate a unique order number")

    def _decrement_stock(self, requested: Dict[int, int], products: Dict[int, Product]) -> None:
        """按商品原子条件扣减：stock >= 数量 时才更新"""
        for product_id, quantity in requested.items():
            result = self.db.execute(
                update(Product)
                .where(
                    Product.id == product_id,
                    Product.is_active.is_(True),
                    Product.stock >= quantity,
                )
                .values(stock=Product.stock - quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InsufficientStockError(products[product_id].name)
            self.db.expire(products[product_id], ["stock"])

    def create_order(
        self,
        user_id: int,
        shipping_address: Optional[dict] = None,
        payment_method=PaymentMethod.UPI,
        notes: str = "",
        upi_transaction_id: str = None,
        payment_screenshot: str = None,
    ) -> Order:
        """把用户购物车转换为订单"""
        payment_method = PaymentMethod(payment_method)

        with cart_lock(self.rlock, user_id):
            try:
                user = self.db.get(User, user_id)
                if not user:
                    raise NotFoundError("User not found")

                cart = self.db.execute(
                    select(Cart).where(Cart.user_id == user_id)
                ).unique().scalar_one_or_none()
                if cart is None or not cart.items:
                    raise EmptyCartError()

                products = {item.product_id: item.product for item in cart.items}
                requested = check_stock((item.product, item.quantity) for item in cart.items)

                subtotal = cart.subtotal
                shipping, tax, total = compute_totals(subtotal)

                order = Order(
                    order_number=self._new_order_number(),
                    user_id=user.id,
                    is_guest_order=False,
                    customer_name=user.full_name,
                    customer_email=user.email,
                    customer_phone=user.phone,
                    shipping_address=build_shipping_address(shipping_address, user),
                    subtotal=subtotal,
                    shipping=shipping,
                    tax=tax,
                    total=total,
                    payment_method=payment_method,
                    payment_status=PaymentStatus.PENDING,
                    status=OrderStatus.PENDING,
                    notes=notes or "",
                    upi_transaction_id=upi_transaction_id or None,
                    payment_screenshot=payment_screenshot,
                    items=[
                        OrderItem(
                            product_id=item.product_id,
                            product=item.product,
                            product_name=item.product.name,
                            quantity=item.quantity,
                            price=item.price,
                            total=item.total,
                        )
                        for item in cart.items
                    ],
                )
                self.db.add(order)
                self.db.flush()

                self._decrement_stock(requested, products)
                cart.clear()

                self.db.commit()
            except Exception as e:
                self.db.rollback()
                logger.error(f"创建订单失败: user_id={user_id}, error={str(e)}")
                raise

        invalidate_stock_cache(self.redis, requested.keys())
        logger.info(
            f"创建订单成功: order_number={order.order_number}, user_id={user_id}, "
            f"items={len(order.items)}, total={total}"
        )
        return order

    def list_user_orders(self, user_id: int) -> List[Order]:
        """用户订单列表（最新在前）"""
        return list(
            self.db.execute(
                select(Order)
                .where(Order.user_id == user_id)
                .order_by(Order.created_at.desc(), Order.id.desc())
            ).scalars().all()
        )

    def get_user_order(self, user_id: int, order_id: int) -> Order:
        """查询单个订单，非本人订单视为不存在"""
        order = self.db.execute(
            select(Order).where(Order.id == order_id, Order.user_id == user_id)
        ).scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        return order
