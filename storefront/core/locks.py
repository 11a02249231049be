"""基于 Redlock 的用户级购物车锁"""

from contextlib import contextmanager
import logging

from redlock import Redlock

from storefront.core.config import settings
from storefront.errors import CartBusyError

logger = logging.getLogger(__name__)


def cart_lock_key(user_id: int) -> str:
    return f"lock:cart:{user_id}"


@contextmanager
def cart_lock(rlock: Redlock, user_id: int, ttl: int = None):
    """持有某个用户的购物车锁

    购物车修改与下单读取购物车互斥。未配置 Redlock 时退化为空操作，
    获取失败抛出 CartBusyError（429，客户端可重试）。
    """
    if not rlock:
        yield None
        return

    lock = rlock.lock(cart_lock_key(user_id), ttl or settings.CART_LOCK_TTL_MS)
    if not lock:
        logger.warning(f"购物车锁获取失败: user_id={user_id}")
        raise CartBusyError()

    try:
        yield lock
    finally:
        rlock.unlock(lock)
