from sqlalchemy import (
    Column,
    String,
    Boolean,
    TIMESTAMP,
    func,
)
from storefront.db.base import Base, BigIntegerPK


class User(Base):
    __tablename__ = "users"

    id = Column(
        BigIntegerPK,
        primary_key=True,
        autoincrement=True,
    )

    full_name = Column(
        String(255),
        nullable=False,
        comment="用户姓名",
    )

    email = Column(
        String(255),
        nullable=False,
        unique=True,
        comment="登录邮箱",
    )

    phone = Column(
        String(32),
        nullable=True,
        comment="手机号",
    )

    # 默认收货地址
    street = Column(String(255), nullable=True)
    city = Column(String(128), nullable=True)
    state = Column(String(128), nullable=True)
    pincode = Column(String(16), nullable=True)
    country = Column(String(64), nullable=True)

    is_admin = Column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
        comment="是否管理员",
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    @property
    def address(self) -> dict:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
            "country": self.country,
        }
