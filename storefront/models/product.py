from sqlalchemy import (
    Column,
    String,
    Integer,
    Numeric,
    Boolean,
    TIMESTAMP,
    CheckConstraint,
    Index,
    func,
)
from storefront.db.base import Base, BigIntegerPK


class Product(Base):
    __tablename__ = "products"

    id = Column(
        BigIntegerPK,
        primary_key=True,
        autoincrement=True,
    )

    sku = Column(
        String(64),
        nullable=False,
        unique=True,
        comment="商品唯一SKU",
    )

    name = Column(
        String(255),
        nullable=False,
        comment="商品名称",
    )

    price = Column(
        Numeric(10, 2),
        nullable=False,
        comment="当前售价",
    )

    # 仅在下单时通过条件更新扣减
    stock = Column(
        Integer,
        nullable=False,
        server_default="0",
        default=0,
        comment="当前可售库存",
    )

    is_active = Column(
        Boolean,
        nullable=False,
        default=True,
        server_default="true",
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
        onupdate=func.now(),
    )

    __table_args__ = (
        CheckConstraint(
            "stock >= 0",
            name="ck_products_stock_non_negative",
        ),
    )


Index(
    "idx_products_name",
    Product.name,
)
