"""订单管理服务单元测试"""
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from storefront.errors import InvalidStatusError, NotFoundError
from storefront.models import Order, OrderStatus, PaymentMethod, PaymentStatus
from storefront.services.order_admin_service import OrderAdminService, normalize_paging, parse_status

BASE_TIME = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_order(db_session, customer):
    counter = {"n": 0}

    def _make(status=OrderStatus.PENDING, total="1100", created_at=None, **fields):
        counter["n"] += 1
        n = counter["n"]
        values = dict(
            order_number=f"ORD-17000000000{n:02d}-TEST{n % 10}",
            user_id=customer.id,
            customer_name=customer.full_name,
            customer_email=customer.email,
            customer_phone=customer.phone,
            shipping_address={"fullAddress": "12 MG Road, Bengaluru, Karnataka - 560001"},
            subtotal=Decimal("1000"),
            shipping=Decimal("50"),
            tax=Decimal("50"),
            total=Decimal(total),
            payment_method=PaymentMethod.UPI,
            payment_status=PaymentStatus.PENDING,
            status=status,
            created_at=created_at or BASE_TIME + timedelta(minutes=n),
        )
        values.update(fields)
        order = Order(**values)
        db_session.add(order)
        db_session.commit()
        return order

    return _make


class TestHelpers:

    def test_normalize_paging(self):
        assert normalize_paging(0, 0) == (1, 50)
        assert normalize_paging(3, 500) == (3, 100)
        assert normalize_paging(2, 10) == (2, 10)

    def test_parse_status(self):
        assert parse_status("shipped") == OrderStatus.SHIPPED
        with pytest.raises(InvalidStatusError):
            parse_status("lost")


class TestOrderAdminService:
    """订单管理服务测试类"""

    @pytest.fixture
    def service(self, db_session):
        return OrderAdminService(db_session)

    def test_list_orders_newest_first(self, service, make_order):
        first = make_order()
        second = make_order()

        result = service.list_orders()

        assert [o.id for o in result["orders"]] == [second.id, first.id]
        assert result["pagination"] == {
            "current_page": 1,
            "total_pages": 1,
            "total_orders": 2,
            "has_next": False,
            "has_prev": False,
        }

    def test_list_orders_pagination(self, service, make_order):
        for _ in range(5):
            make_order()

        result = service.list_orders(page=2, limit=2)

        assert len(result["orders"]) == 2
        assert result["pagination"]["total_pages"] == 3
        assert result["pagination"]["has_next"] is True
        assert result["pagination"]["has_prev"] is True

    def test_list_orders_status_filter(self, service, make_order):
        make_order(status=OrderStatus.PENDING)
        shipped = make_order(status=OrderStatus.SHIPPED)

        result = service.list_orders(status="shipped")
        assert [o.id for o in result["orders"]] == [shipped.id]

        assert service.list_orders(status="all")["pagination"]["total_orders"] == 2

    def test_list_orders_invalid_status_filter(self, service, make_order):
        with pytest.raises(InvalidStatusError):
            service.list_orders(status="lost")

    def test_list_orders_search(self, service, make_order):
        make_order()
        other = make_order(customer_name="Priya Sharma", customer_email="priya@example.com")

        assert [o.id for o in service.list_orders(search="PRIYA")["orders"]] == [other.id]
        assert [o.id for o in service.list_orders(search=other.order_number)["orders"]] == [other.id]
        assert service.list_orders(search="nobody")["orders"] == []

    def test_list_orders_search_escapes_wildcards(self, service, make_order):
        make_order()
        assert service.list_orders(search="%")["orders"] == []

    def test_list_orders_date_range(self, service, make_order):
        make_order(created_at=BASE_TIME - timedelta(days=2))
        inside = make_order(created_at=BASE_TIME)
        make_order(created_at=BASE_TIME + timedelta(days=2))

        result = service.list_orders(
            start_date=BASE_TIME - timedelta(days=1),
            end_date=BASE_TIME + timedelta(days=1),
        )

        assert [o.id for o in result["orders"]] == [inside.id]

    def test_update_status(self, service, make_order):
        order = make_order()

        updated = service.update_status(order.id, "shipped", tracking_number="TRK123")

        assert updated.status == OrderStatus.SHIPPED
        assert updated.tracking_number == "TRK123"
        assert updated.delivered_at is None

    def test_update_status_delivered_stamps_time(self, service, make_order):
        order = make_order(status=OrderStatus.SHIPPED)

        updated = service.update_status(order.id, "delivered")

        assert updated.status == OrderStatus.DELIVERED
        assert updated.delivered_at is not None

    def test_update_status_invalid_leaves_order_unchanged(self, service, db_session, make_order):
        order = make_order(status=OrderStatus.CONFIRMED)

        with pytest.raises(InvalidStatusError):
            service.update_status(order.id, "teleported")

        db_session.refresh(order)
        assert order.status == OrderStatus.CONFIRMED

    def test_update_status_missing_order(self, service):
        with pytest.raises(NotFoundError):
            service.update_status(999, "shipped")

    def test_get_stats(self, service, make_order):
        make_order(status=OrderStatus.PENDING, total="500")
        make_order(status=OrderStatus.CONFIRMED, total="1100")
        make_order(status=OrderStatus.SHIPPED, total="200")
        make_order(status=OrderStatus.DELIVERED, total="300")
        make_order(status=OrderStatus.CANCELLED, total="900")
        newest = make_order(status=OrderStatus.PENDING, total="100")

        stats = service.get_stats()

        assert stats["total_orders"] == 6
        assert stats["pending_orders"] == 2
        assert stats["confirmed_orders"] == 1
        assert stats["shipped_orders"] == 1
        assert stats["delivered_orders"] == 1
        assert stats["cancelled_orders"] == 1
        # 营收只统计 confirmed/shipped/delivered
        assert stats["total_revenue"] == 1600.0
        assert len(stats["recent_orders"]) == 5
        assert stats["recent_orders"][0].id == newest.id

    def test_get_stats_empty(self, service):
        stats = service.get_stats()

        assert stats["total_orders"] == 0
        assert stats["total_revenue"] == 0.0
        assert stats["recent_orders"] == []
