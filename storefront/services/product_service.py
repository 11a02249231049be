"""商品与库存查询服务"""

from sqlalchemy import select
from sqlalchemy.orm import Session
from typing import Iterable, List
import logging
from redis import Redis
from redis.exceptions import RedisError

from storefront.core.config import settings
from storefront.errors import NotFoundError
from storefront.models.product import Product

logger = logging.getLogger(__name__)


def stock_cache_key(product_id: int) -> str:
    return f"stock:available:{product_id}"


def invalidate_stock_cache(redis: Redis, product_ids: Iterable[int]) -> None:
    """库存变化后失效缓存

    在数据库提交之后调用，Redis 故障只记录警告，缓存由 TTL 自然过期。
    """
    if not redis:
        return
    product_ids = list(product_ids)
    if not product_ids:
        return
    try:
        redis.delete(*[stock_cache_key(pid) for pid in product_ids])
        logger.debug(f"Cache invalidated for products {product_ids}")
    except (RedisError, OSError) as e:
        logger.warning(f"失效库存缓存失败: products={product_ids}, error={str(e)}")


class ProductService:
    """商品服务类"""

    def __init__(self, db: Session, redis: Redis = None):
        self.db = db
        self.redis = redis

    def list_products(self, include_inactive: bool = False) -> List[Product]:
        stmt = select(Product).order_by(Product.id)
        if not include_inactive:
            stmt = stmt.where(Product.is_active.is_(True))
        return list(self.db.execute(stmt).scalars().all())

    def get_product(self, product_id: int) -> Product:
        product = self.db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def get_product_stock(self, product_id: int) -> int:
        """查询商品可用库存（带缓存）"""
        cache_key = stock_cache_key(product_id)

        # 先查缓存
        if self.redis:
            cached = self.redis.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for product {product_id}")
                return int(cached)

        # 缓存未命中，查询数据库
        stmt = select(Product.stock).where(Product.id == product_id)
        available = self.db.execute(stmt).scalar_one_or_none()
        if available is None:
            raise NotFoundError("Product not found")

        if self.redis:
            self.redis.setex(cache_key, settings.STOCK_CACHE_TTL, available)
            logger.debug(f"Cache set for product {product_id}: {available}")

        return available

    def batch_get_stocks(self, product_ids: List[int]) -> dict:
        """批量获取库存（带缓存），不存在的商品记为 0"""
        if not product_ids:
            return {}

        results = {}
        uncached_ids = []

        if self.redis:
            cached_values = self.redis.mget([stock_cache_key(pid) for pid in product_ids])
            for pid, cached in zip(product_ids, cached_values):
                if cached is not None:
                    results[pid] = int(cached)
                else:
                    uncached_ids.append(pid)
        else:
            uncached_ids = list(product_ids)

        if uncached_ids:
            rows = self.db.execute(
                select(Product.id, Product.stock).where(Product.id.in_(uncached_ids))
            ).all()
            stock_map = {row.id: row.stock for row in rows}

            pipe = self.redis.pipeline() if self.redis else None
            for pid in uncached_ids:
                available = stock_map.get(pid, 0)
                results[pid] = available
                if pipe is not None:
                    pipe.setex(stock_cache_key(pid), settings.STOCK_CACHE_TTL, available)
            if pipe is not None:
                pipe.execute()

        return results

    def create_product(self, sku: str, name: str, price, stock: int = 0, is_active: bool = True) -> Product:
        product = Product(sku=sku, name=name, price=price, stock=stock, is_active=is_active)
        try:
            self.db.add(product)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"商品创建成功: id={product.id}, sku={sku}, stock={stock}")
        return product

    def set_stock(self, product_id: int, stock: int) -> Product:
        """管理员直接设置库存"""
        if stock < 0:
            raise ValueError("stock must be >= 0")
        product = self.get_product(product_id)
        before = product.stock
        product.stock = stock
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        invalidate_stock_cache(self.redis, [product_id])
        logger.info(f"库存调整: product_id={product_id}, {before} -> {stock}")
        return product
