from decimal import Decimal

from sqlalchemy import (
    Column,
    BigInteger,
    Integer,
    Numeric,
    TIMESTAMP,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship
from storefront.db.base import Base, BigIntegerPK


class Cart(Base):
    __tablename__ = "carts"

    id = Column(
        BigIntegerPK,
        primary_key=True,
        autoincrement=True,
    )

    # 每个用户只有一个购物车，下单后清空复用
    user_id = Column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        comment="所属用户",
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
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
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    @property
    def subtotal(self) -> Decimal:
        return sum((item.total for item in self.items), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def find_item(self, product_id: int):
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def clear(self):
        """清空购物车行，保留购物车本身"""
        self.items.clear()


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(
        BigIntegerPK,
        primary_key=True,
        autoincrement=True,
    )

    cart_id = Column(
        BigInteger,
        ForeignKey("carts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    product_id = Column(
        BigInteger,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        comment="商品ID",
    )

    quantity = Column(
        Integer,
        nullable=False,
        comment="购买数量",
    )

    # 首次加入购物车时的单价
    price = Column(
        Numeric(10, 2),
        nullable=False,
        comment="加入时单价",
    )

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product", lazy="joined")

    __table_args__ = (
        CheckConstraint(
            "quantity > 0",
            name="ck_cart_items_quantity_positive",
        ),
        UniqueConstraint(
            "cart_id",
            "product_id",
            name="uq_cart_product",
        ),
    )

    @property
    def total(self) -> Decimal:
        return Decimal(str(self.price)) * self.quantity
