"""Vendor-scoped sales analytics.

Reports are derived on demand from the order tables; nothing here is
persisted. All amounts are integer minor units and the only divisions
(average order value, items per order) go through ``utils.money``.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, distinct
from sqlalchemy.orm import Session, selectinload, joinedload

from models.order import Order, OrderItem
from models.product import Product
from utils.errors import ValidationError
from utils.ids import VendorId
from utils.money import average_amount, ratio, utcnow

logger = logging.getLogger(__name__)

PERIODS = ("hour", "day", "month", "year")
DEFAULT_PERIOD = "month"


def period_start(period: str, now: datetime) -> datetime:
    """Lower bound on ``created_at`` for a reporting period; the upper bound is always now."""
    if period == "hour":
        return now - timedelta(hours=1)
    if period == "day":
        return now - timedelta(hours=24)
    if period == "month":
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if period == "year":
        return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    raise ValidationError(f"Unsupported period '{period}', expected one of: {', '.join(PERIODS)}")


@dataclass(frozen=True)
class ProductSales:
    name: str
    quantity: int
    revenue: int


@dataclass(frozen=True)
class TrendPoint:
    date: str
    sales: int


@dataclass
class AnalyticsReport:
    period: str
    total_sales: int = 0
    total_orders: int = 0
    total_items: int = 0
    product_sales: List[ProductSales] = field(default_factory=list)
    sales_trend: List[TrendPoint] = field(default_factory=list)

    @property
    def average_order_value(self) -> Optional[int]:
        return average_amount(self.total_sales, self.total_orders)

    @property
    def items_per_order(self) -> Optional[float]:
        return ratio(self.total_items, self.total_orders)


def compute_analytics(
    db: Session, vendor_id: VendorId, period: str = DEFAULT_PERIOD, now: Optional[datetime] = None
) -> AnalyticsReport:
    lower_bound = period_start(period, now or utcnow())

    has_products = db.query(Product.id).filter(Product.vendor_id == vendor_id).first() is not None
    if not has_products:
        return AnalyticsReport(period=period)

    # Attribute by the vendor recorded on each line at sale time, not current ownership
    orders = (
        db.query(Order)
        .options(selectinload(Order.items).joinedload(OrderItem.product))
        .filter(
            Order.created_at >= lower_bound,
            Order.items.any(OrderItem.vendor_id == vendor_id),
        )
        .order_by(Order.created_at.asc(), Order.id.asc())
        .all()
    )

    report = AnalyticsReport(period=period, total_orders=len(orders))
    by_product: Dict[str, List[int]] = {}
    by_day: Dict[str, int] = {}

    for order in orders:
        # Orders carry the only timestamp; items are bucketed by their order's day
        day = order.created_at.date().isoformat()
        for it in order.items:
            if it.vendor_id != vendor_id:
                continue
            amount = it.line_total
            report.total_sales += amount
            report.total_items += it.quantity

            name = it.product.name if it.product else f"Product {it.product_id}"
            acc = by_product.setdefault(name, [0, 0])
            acc[0] += it.quantity
            acc[1] += amount

            by_day[day] = by_day.get(day, 0) + amount

    report.product_sales = [
        ProductSales(name=name, quantity=qty, revenue=revenue)
        for name, (qty, revenue) in sorted(by_product.items(), key=lambda kv: (-kv[1][1], kv[0]))
    ]
    report.sales_trend = [TrendPoint(date=d, sales=by_day[d]) for d in sorted(by_day)]

    logger.debug(
        "Analytics for vendor %s, period %s: %s orders, sales %s",
        vendor_id, period, report.total_orders, report.total_sales,
    )
    return report


@dataclass
class DashboardStats:
    total_products: int
    products_this_month: int
    total_orders: int
    orders_this_month: int
    total_sales: int
    sales_this_month: int


def _vendor_totals(db: Session, vendor_id: VendorId, since: Optional[datetime] = None) -> Tuple[int, int]:
    """(distinct orders, revenue) over the vendor's own line items."""
    q = (
        db.query(
            func.count(distinct(OrderItem.order_id)),
            func.coalesce(func.sum(OrderItem.quantity * OrderItem.unit_price), 0),
        )
        .join(Order, Order.id == OrderItem.order_id)
        .filter(OrderItem.vendor_id == vendor_id)
    )
    if since is not None:
        q = q.filter(Order.created_at >= since)
    orders, sales = q.one()
    return int(orders or 0), int(sales or 0)


def dashboard_stats(db: Session, vendor_id: VendorId, now: Optional[datetime] = None) -> DashboardStats:
    month_start = period_start("month", now or utcnow())

    products = db.query(Product).filter(Product.vendor_id == vendor_id)
    total_orders, total_sales = _vendor_totals(db, vendor_id)
    orders_this_month, sales_this_month = _vendor_totals(db, vendor_id, since=month_start)

    return DashboardStats(
        total_products=products.count(),
        products_this_month=products.filter(Product.created_at >= month_start).count(),
        total_orders=total_orders,
        orders_this_month=orders_this_month,
        total_sales=total_sales,
        sales_this_month=sales_this_month,
    )
