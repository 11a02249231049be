"""订单管理（后台）服务"""

from datetime import datetime, timezone
from math import ceil
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session
from typing import Optional, Tuple
import logging

from storefront.errors import InvalidStatusError, NotFoundError
from storefront.models.order import Order, OrderStatus, REVENUE_STATUSES

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
RECENT_ORDERS_LIMIT = 5


def normalize_paging(page: int, limit: int, max_limit: int = MAX_PAGE_SIZE) -> Tuple[int, int]:
    p = page if page and page > 0 else 1
    ps = limit if limit and limit > 0 else DEFAULT_PAGE_SIZE
    return p, min(ps, max_limit)


def parse_status(status) -> OrderStatus:
    """把外部传入的状态转换为 OrderStatus，非法值抛 InvalidStatusError"""
    try:
        return OrderStatus(status)
    except ValueError:
        raise InvalidStatusError(f"Invalid status: {status}")


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class OrderAdminService:
    """订单列表、状态流转与统计"""

    def __init__(self, db: Session):
        self.db = db

    def list_orders(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        status: Optional[str] = None,
        search: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> dict:
        """分页查询全部订单（最新在前）

        Args:
            page: 页码，从 1 开始
            limit: 每页数量，最大 100
            status: 状态过滤，None 或 "all" 表示不过滤
            search: 订单号/客户姓名/邮箱/电话的模糊搜索（不区分大小写）
            start_date: 创建时间下限（含）
            end_date: 创建时间上限（含）

        Returns:
            {"orders": [...], "pagination": {...}}
        """
        page, limit = normalize_paging(page, limit)

        conditions = []
        if status and status != "all":
            conditions.append(Order.status == parse_status(status))

        if search:
            pattern = f"%{_escape_like(search.strip())}%"
            conditions.append(
                or_(
                    Order.order_number.ilike(pattern, escape="\\"),
                    Order.customer_name.ilike(pattern, escape="\\"),
                    Order.customer_email.ilike(pattern, escape="\\"),
                    Order.customer_phone.ilike(pattern, escape="\\"),
                )
            )

        if start_date:
            conditions.append(Order.created_at >= start_date)
        if end_date:
            conditions.append(Order.created_at <= end_date)

        total_orders = self.db.execute(
            select(func.count(Order.id)).where(*conditions)
        ).scalar_one()

        orders = self.db.execute(
            select(Order)
            .where(*conditions)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().all()

        return {
            "orders": list(orders),
            "pagination": {
                "current_page": page,
                "total_pages": ceil(total_orders / limit),
                "total_orders": total_orders,
                "has_next": page * limit < total_orders,
                "has_prev": page > 1,
            },
        }

    def update_status(
        self,
        order_id: int,
        status: str,
        tracking_number: Optional[str] = None,
        estimated_delivery: Optional[datetime] = None,
    ) -> Order:
        """更新订单状态，只允许枚举内的值；delivered 时记录送达时间"""
        new_status = parse_status(status)

        order = self.db.get(Order, order_id)
        if not order:
            raise NotFoundError("Order not found")

        try:
            order.status = new_status
            if tracking_number:
                order.tracking_number = tracking_number
            if estimated_delivery:
                order.estimated_delivery = estimated_delivery
            if new_status == OrderStatus.DELIVERED:
                order.delivered_at = datetime.now(timezone.utc)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"更新订单状态失败: order_id={order_id}, error={str(e)}")
            raise

        logger.info(f"订单状态更新: order_id={order_id}, status={new_status.value}")
        return order

    def get_stats(self) -> dict:
        """各状态订单数、营收（仅 confirmed/shipped/delivered）与最近 5 单"""
        counts = dict(
            self.db.execute(
                select(Order.status, func.count(Order.id)).group_by(Order.status)
            ).all()
        )

        total_revenue = self.db.execute(
            select(func.coalesce(func.sum(Order.total), 0))
            .where(Order.status.in_(REVENUE_STATUSES))
        ).scalar_one()

        recent_orders = self.db.execute(
            select(Order)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(RECENT_ORDERS_LIMIT)
        ).scalars().all()

        stats = {
            "total_orders": sum(counts.values()),
            "total_revenue": float(total_revenue or 0),
            "recent_orders": list(recent_orders),
        }
        for status in OrderStatus:
            stats[f"{status.value}_orders"] = counts.get(status, 0)
        return stats
