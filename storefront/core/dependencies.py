"""依赖注入配置模块"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

# 数据库会话依赖
from storefront.db.session import get_db

# Redis 依赖
from storefront.core.redis import redis_client, redlock

from storefront.services.cart_service import CartService
from storefront.services.order_admin_service import OrderAdminService
from storefront.services.order_service import OrderService
from storefront.services.payment_service import PaymentService
from storefront.services.product_service import ProductService
from storefront.services.user_service import UserService

logger = logging.getLogger(__name__)


def get_redis():
    """获取 Redis 客户端，不可用时返回 None（关闭缓存）"""
    try:
        redis_client.ping()
    except Exception as e:
        logger.warning(f"Redis unavailable, stock cache disabled: {e}")
        return None
    return redis_client


def get_redlock(redis=Depends(get_redis)):
    """获取 Redlock 分布式锁实例，Redis 不可用时返回 None"""
    if redis is None:
        return None
    return redlock


def get_product_service(
    db: Session = Depends(get_db),
    redis=Depends(get_redis),
) -> ProductService:
    return ProductService(db=db, redis=redis)


def get_cart_service(
    db: Session = Depends(get_db),
    rlock=Depends(get_redlock),
) -> CartService:
    return CartService(db=db, rlock=rlock)


def get_order_service(
    db: Session = Depends(get_db),
    redis=Depends(get_redis),
    rlock=Depends(get_redlock),
) -> OrderService:
    return OrderService(db=db, redis=redis, rlock=rlock)


def get_order_admin_service(db: Session = Depends(get_db)) -> OrderAdminService:
    return OrderAdminService(db=db)


def get_payment_service(
    db: Session = Depends(get_db),
    redis=Depends(get_redis),
    rlock=Depends(get_redlock),
) -> PaymentService:
    return PaymentService(db=db, redis=redis, rlock=rlock)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db=db)
