"""下单服务单元测试"""
import re
import pytest
from decimal import Decimal
from sqlalchemy import func, select

from storefront.errors import CartBusyError, EmptyCartError, InsufficientStockError, NotFoundError
from storefront.models import Cart, CartItem, Order, OrderStatus, PaymentMethod, PaymentStatus, Product
from storefront.services import order_service
from storefront.services.order_service import (
    OrderService,
    build_shipping_address,
    check_stock,
    compute_totals,
    generate_order_number,
)


def _order_count(db):
    return db.execute(select(func.count(Order.id))).scalar_one()


class TestPricing:
    """计价与订单号测试"""

    def test_compute_totals(self):
        """小计 1000：运费 50，税 50，合计 1100"""
        shipping, tax, total = compute_totals(Decimal("1000"))
        assert shipping == Decimal("50")
        assert tax == Decimal("50")
        assert total == Decimal("1100")

    def test_compute_totals_rounds_half_up(self):
        """税费四舍五入到整数"""
        _, tax, total = compute_totals(Decimal("130"))
        assert tax == Decimal("7")
        assert total == Decimal("187")

    def test_generate_order_number_format(self):
        number = generate_order_number(1700000000000)
        assert re.fullmatch(r"ORD-1700000000000-[A-Z0-9]{5}", number)

    def test_generate_order_number_uses_current_time(self):
        assert re.fullmatch(r"ORD-\d{13}-[A-Z0-9]{5}", generate_order_number())


class TestCheckStock:
    """库存校验测试"""

    def test_aggregates_same_product(self):
        """同一商品多行合并后再比较"""
        product = Product(id=1, name="Mango", stock=5, is_active=True)
        with pytest.raises(InsufficientStockError) as exc:
            check_stock([(product, 3), (product, 3)])
        assert exc.value.message == "Insufficient stock for Mango"

    def test_returns_requested_quantities(self):
        mango = Product(id=1, name="Mango", stock=5, is_active=True)
        honey = Product(id=2, name="Honey", stock=2, is_active=True)
        assert check_stock([(mango, 2), (honey, 2), (mango, 3)]) == {1: 5, 2: 2}

    def test_inactive_product_has_no_stock(self):
        product = Product(id=3, name="Coconut", stock=50, is_active=False)
        with pytest.raises(InsufficientStockError):
            check_stock([(product, 1)])


class TestShippingAddress:
    """收货地址快照测试"""

    def test_override_address(self, customer):
        address = build_shipping_address(
            {"street": "1 Beach Rd", "city": "Chennai", "state": "TN", "zip_code": "600001", "country": "India"},
            customer,
        )
        assert address["fullAddress"] == "1 Beach Rd, Chennai, TN - 600001"

    def test_defaults_from_user_profile(self, customer):
        address = build_shipping_address(None, customer)
        assert address["city"] == "Bengaluru"
        assert address["fullAddress"] == "12 MG Road, Bengaluru, Karnataka - 560001"

    def test_placeholders_when_profile_empty(self, admin):
        address = build_shipping_address(None, admin)
        assert address["street"] == "Not provided"
        assert address["pincode"] == "000000"
        assert address["country"] == "India"


class TestOrderService:
    """下单服务测试类"""

    @pytest.fixture
    def service(self, db_session, mock_redis, mock_redlock):
        return OrderService(db_session, mock_redis, mock_redlock)

    def test_create_order_success(self, service, db_session, customer, products, fill_cart, mock_redis):
        """下单成功：写入订单、扣减库存、清空购物车"""
        mango = products["mango"]
        fill_cart(customer, (mango, 1))

        order = service.create_order(customer.id, notes="Leave at gate")

        assert order.id is not None
        assert order.subtotal == Decimal("1000")
        assert order.shipping == Decimal("50")
        assert order.tax == Decimal("50")
        assert order.total == Decimal("1100")
        assert order.status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.PENDING
        assert order.payment_method == PaymentMethod.UPI
        assert order.customer_email == "ravi@example.com"
        assert order.notes == "Leave at gate"
        assert order.shipping_address["fullAddress"].startswith("12 MG Road")

        assert len(order.items) == 1
        assert order.items[0].product_name == "Alphonso Mango"
        assert order.items[0].quantity == 1
        assert order.items[0].total == Decimal("1000")

        db_session.refresh(mango)
        assert mango.stock == 9

        cart = db_session.execute(select(Cart).where(Cart.user_id == customer.id)).unique().scalar_one()
        assert cart.items == []

        mock_redis.delete.assert_called_once_with("stock:available:%d" % mango.id)

    def test_create_order_holds_cart_lock(self, service, customer, products, fill_cart, mock_redlock):
        fill_cart(customer, (products["mango"], 1))

        service.create_order(customer.id)

        mock_redlock.lock.assert_called_once_with(f"lock:cart:{customer.id}", 10000)
        mock_redlock.unlock.assert_called_once_with(mock_redlock.lock.return_value)

    def test_create_order_lock_busy(self, service, db_session, customer, products, fill_cart, mock_redlock):
        """锁获取失败时不做任何修改"""
        fill_cart(customer, (products["mango"], 1))
        mock_redlock.lock.return_value = False

        with pytest.raises(CartBusyError):
            service.create_order(customer.id)

        assert _order_count(db_session) == 0
        mock_redlock.unlock.assert_not_called()

    def test_create_order_insufficient_stock(self, service, db_session, customer, products, fill_cart):
        """库存 2，下单 3：无订单，库存和购物车不变"""
        honey = products["honey"]
        fill_cart(customer, (honey, 3))

        with pytest.raises(InsufficientStockError) as exc:
            service.create_order(customer.id)

        assert exc.value.message == "Insufficient stock for Wild Honey"
        assert _order_count(db_session) == 0
        db_session.refresh(honey)
        assert honey.stock == 2
        cart = db_session.execute(select(Cart).where(Cart.user_id == customer.id)).unique().scalar_one()
        assert [(item.product_id, item.quantity) for item in cart.items] == [(honey.id, 3)]

    def test_one_short_line_fails_whole_order(self, service, db_session, customer, products, fill_cart):
        """任意一行库存不足，其它行的库存也不扣减"""
        mango, honey = products["mango"], products["honey"]
        fill_cart(customer, (mango, 2), (honey, 5))

        with pytest.raises(InsufficientStockError):
            service.create_order(customer.id)

        db_session.refresh(mango)
        assert mango.stock == 10
        assert _order_count(db_session) == 0

    def test_concurrent_decrement_never_oversells(
        self, service, db_session, customer, products, fill_cart, monkeypatch
    ):
        """校验通过后库存被其它请求抢走：条件扣减失败并整体回滚"""
        honey = products["honey"]
        fill_cart(customer, (honey, 2))

        real_check_stock = order_service.check_stock

        def check_then_steal(lines):
            requested = real_check_stock(lines)
            db_session.execute(
                Product.__table__.update().where(Product.id == honey.id).values(stock=1)
            )
            return requested

        monkeypatch.setattr(order_service, "check_stock", check_then_steal)

        with pytest.raises(InsufficientStockError):
            service.create_order(customer.id)

        assert _order_count(db_session) == 0
        db_session.refresh(honey)
        # 回滚后恢复为提交前的状态
        assert honey.stock == 2
        assert honey.stock >= 0

    def test_two_users_cannot_both_take_last_units(self, service, db_session, customer, admin, products, fill_cart):
        """两个用户争抢同一批库存，只有一个成功"""
        honey = products["honey"]
        fill_cart(customer, (honey, 2))
        fill_cart(admin, (honey, 2))

        service.create_order(customer.id)
        with pytest.raises(InsufficientStockError):
            service.create_order(admin.id)

        db_session.refresh(honey)
        assert honey.stock == 0
        assert _order_count(db_session) == 1

    def test_create_order_empty_cart(self, service, customer, fill_cart):
        fill_cart(customer)
        with pytest.raises(EmptyCartError):
            service.create_order(customer.id)

    def test_create_order_without_cart(self, service, customer):
        with pytest.raises(EmptyCartError):
            service.create_order(customer.id)

    def test_create_order_unknown_user(self, service):
        with pytest.raises(NotFoundError):
            service.create_order(999)

    def test_create_order_without_redis(self, db_session, customer, products, fill_cart):
        """Redis 不可用时锁和缓存降级，下单仍然正确"""
        fill_cart(customer, (products["mango"], 3))
        service = OrderService(db_session, None, None)

        order = service.create_order(customer.id, payment_method="cod")

        assert order.payment_method == PaymentMethod.COD
        db_session.refresh(products["mango"])
        assert products["mango"].stock == 7

    def test_create_order_survives_cache_invalidation_failure(
        self, service, db_session, customer, products, fill_cart, mock_redis
    ):
        """提交后 Redis 故障：订单照常返回，库存与购物车已落库"""
        fill_cart(customer, (products["mango"], 2))
        mock_redis.delete.side_effect = ConnectionError("redis down")

        order = service.create_order(customer.id)

        assert order.id is not None
        assert _order_count(db_session) == 1
        db_session.refresh(products["mango"])
        assert products["mango"].stock == 8
        cart = db_session.execute(select(Cart).where(Cart.user_id == customer.id)).unique().scalar_one()
        assert cart.items == []

    def test_order_number_retry_on_collision(self, service, customer, products, fill_cart, monkeypatch):
        """订单号冲突时重新生成"""
        fill_cart(customer, (products["mango"], 1))
        first = service.create_order(customer.id)

        numbers = iter([first.order_number, "ORD-1700000000000-ABCDE"])
        monkeypatch.setattr(order_service, "generate_order_number", lambda: next(numbers))
        mango = products["mango"]
        cart = service.db.execute(select(Cart).where(Cart.user_id == customer.id)).unique().scalar_one()
        cart.items.append(CartItem(product_id=mango.id, product=mango, quantity=1, price=mango.price))
        service.db.commit()

        second = service.create_order(customer.id)
        assert second.order_number == "ORD-1700000000000-ABCDE"

    def test_list_and_get_user_orders(self, service, db_session, customer, admin, products, fill_cart):
        fill_cart(customer, (products["mango"], 1))
        order = service.create_order(customer.id)

        assert [o.id for o in service.list_user_orders(customer.id)] == [order.id]
        assert service.list_user_orders(admin.id) == []
        assert service.get_user_order(customer.id, order.id).order_number == order.order_number

        # 他人订单视为不存在
        with pytest.raises(NotFoundError):
            service.get_user_order(admin.id, order.id)
