# Models
from .user import User
from .product import Product
from .cart import Cart, CartItem
from .order import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus

__all__ = [
    "User",
    "Product",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
]
