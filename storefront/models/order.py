import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    BigInteger,
    String,
    Integer,
    Numeric,
    Boolean,
    Text,
    JSON,
    TIMESTAMP,
    Enum,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.orm import relationship
from storefront.db.base import Base, BigIntegerPK


# 1️ 订单状态枚举

class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# 计入营收的订单状态
REVENUE_STATUSES = (
    OrderStatus.CONFIRMED,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)


class PaymentMethod(str, enum.Enum):
    UPI = "upi"
    COD = "cod"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"      # 等待管理员核验
    VERIFIED = "verified"    # 已核验到账
    REJECTED = "rejected"    # 凭证被驳回


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# 2️ 订单表（创建后只允许更新状态/物流字段）

class Order(Base):
    __tablename__ = "orders"

    id = Column(
        BigIntegerPK,
        primary_key=True,
        autoincrement=True,
    )

    order_number = Column(
        String(64),
        nullable=False,
        unique=True,
        comment="对外展示的订单号",
    )

    # 游客订单没有关联用户
    user_id = Column(
        BigInteger,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    is_guest_order = Column(Boolean, nullable=False, default=False)

    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(32), nullable=True)

    shipping_address = Column(
        JSON,
        nullable=False,
        comment="下单时的收货地址快照",
    )

    subtotal = Column(Numeric(12, 2), nullable=False)
    shipping = Column(Numeric(12, 2), nullable=False)
    tax = Column(Numeric(12, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)

    payment_method = Column(
        Enum(
            PaymentMethod,
            name="payment_method_type",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=PaymentMethod.UPI,
    )

    payment_status = Column(
        Enum(
            PaymentStatus,
            name="payment_status_type",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    status = Column(
        Enum(
            OrderStatus,
            name="order_status_type",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=OrderStatus.PENDING,
    )

    notes = Column(Text, nullable=True)

    tracking_number = Column(String(128), nullable=True)
    estimated_delivery = Column(TIMESTAMP(timezone=True), nullable=True)
    delivered_at = Column(TIMESTAMP(timezone=True), nullable=True)

    upi_transaction_id = Column(String(128), nullable=True)
    payment_screenshot = Column(
        String(512),
        nullable=True,
        comment="支付截图存储路径",
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
    )

    updated_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )


# 3️ 订单行（冻结的购物车行副本）

class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(
        BigIntegerPK,
        primary_key=True,
        autoincrement=True,
    )

    order_id = Column(
        BigInteger,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    product_id = Column(
        BigInteger,
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
    )

    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product", lazy="joined")


# 4️ 高频查询优化索引

Index(
    "idx_orders_status_created_desc",
    Order.status,
    Order.created_at.desc(),
)

Index(
    "idx_orders_created_desc",
    Order.created_at.desc(),
)
