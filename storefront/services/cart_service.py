"""购物车服务实现"""

from sqlalchemy import select
from sqlalchemy.orm import Session
from typing import Optional
import logging
from redlock import Redlock

from storefront.core.locks import cart_lock
from storefront.errors import InsufficientStockError, NotFoundError
from storefront.models.cart import Cart, CartItem
from storefront.models.product import Product

logger = logging.getLogger(__name__)


class CartService:
    """购物车服务类，所有修改都持有用户级购物车锁"""

    def __init__(self, db: Session, rlock: Redlock = None):
        self.db = db
        self.rlock = rlock

    def get_cart(self, user_id: int) -> Optional[Cart]:
        """查询用户购物车，不存在时返回 None（不会创建）"""
        return self.db.execute(
            select(Cart).where(Cart.user_id == user_id)
        ).unique().scalar_one_or_none()

    def _get_or_create_cart(self, user_id: int) -> Cart:
        cart = self.get_cart(user_id)
        if cart is None:
            cart = Cart(user_id=user_id)
            self.db.add(cart)
            self.db.flush()
            logger.info(f"创建购物车: user_id={user_id}")
        return cart

    def _get_active_product(self, product_id: int) -> Product:
        product = self.db.get(Product, product_id)
        if not product or not product.is_active:
            raise NotFoundError("Product not found")
        return product

    def add_item(self, user_id: int, product_id: int, quantity: int = 1) -> Cart:
        """加入购物车，同一商品合并为一行"""
        if quantity <= 0:
            raise ValueError("quantity must be > 0")

        with cart_lock(self.rlock, user_id):
            try:
                product = self._get_active_product(product_id)
                cart = self._get_or_create_cart(user_id)

                item = cart.find_item(product_id)
                new_quantity = quantity + (item.quantity if item else 0)
                if new_quantity > product.stock:
                    raise InsufficientStockError(product.name)

                if item:
                    item.quantity = new_quantity
                else:
                    cart.items.append(
                        CartItem(
                            product_id=product.id,
                            product=product,
                            quantity=new_quantity,
                            price=product.price,
                        )
                    )

                self.db.commit()
                logger.info(f"加入购物车: user_id={user_id}, product_id={product_id}, quantity={new_quantity}")
                return cart
            except Exception:
                self.db.rollback()
                raise

    def update_item(self, user_id: int, product_id: int, quantity: int) -> Cart:
        """修改数量，0 表示删除该行"""
        if quantity < 0:
            raise ValueError("quantity must be >= 0")

        with cart_lock(self.rlock, user_id):
            try:
                cart = self.get_cart(user_id)
                item = cart.find_item(product_id) if cart else None
                if item is None:
                    raise NotFoundError("Item not found in cart")

                if quantity == 0:
                    cart.items.remove(item)
                else:
                    if quantity > item.product.stock:
                        raise InsufficientStockError(item.product.name)
                    item.quantity = quantity

                self.db.commit()
                return cart
            except Exception:
                self.db.rollback()
                raise

    def remove_item(self, user_id: int, product_id: int) -> Cart:
        with cart_lock(self.rlock, user_id):
            try:
                cart = self.get_cart(user_id)
                item = cart.find_item(product_id) if cart else None
                if item is None:
                    raise NotFoundError("Item not found in cart")
                cart.items.remove(item)
                self.db.commit()
                return cart
            except Exception:
                self.db.rollback()
                raise

    def clear(self, user_id: int) -> Optional[Cart]:
        """清空购物车（保留购物车本身）"""
        with cart_lock(self.rlock, user_id):
            try:
                cart = self.get_cart(user_id)
                if cart is not None:
                    cart.clear()
                    self.db.commit()
                return cart
            except Exception:
                self.db.rollback()
                raise
