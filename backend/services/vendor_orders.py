# services/vendor_orders.py
import math
from dataclasses import dataclass
from typing import Generic, List, Optional, TypeVar

from sqlalchemy.orm import Session, selectinload, joinedload

from config import settings
from models.order import Order, OrderItem
from services.order_status import parse_status
from utils.errors import ForbiddenError, NotFoundError, ValidationError
from utils.ids import OrderId, VendorId

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


@dataclass
class VendorOrderProjection:
    """An order as one vendor sees it: only their line items and subtotal."""

    order: Order
    items: List[OrderItem]
    vendor_subtotal: int


def project_for_vendor(order: Order, vendor_id: VendorId) -> VendorOrderProjection:
    own = [it for it in order.items if it.vendor_id == vendor_id]
    return VendorOrderProjection(
        order=order,
        items=own,
        vendor_subtotal=sum(it.line_total for it in own),
    )


def check_paging(page: int, limit: int):
    if page < 1:
        raise ValidationError("Page must be at least 1")
    if limit < 1:
        raise ValidationError("Limit must be at least 1")
    return page, min(limit, settings.MAX_PAGE_SIZE)


def list_orders_for_vendor(
    db: Session,
    vendor_id: VendorId,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Page[VendorOrderProjection]:
    page, limit = check_paging(page, limit)

    q = db.query(Order).filter(Order.items.any(OrderItem.vendor_id == vendor_id))
    if status:
        q = q.filter(Order.status == parse_status(status).value)

    total = q.count()
    rows = (
        q.options(selectinload(Order.items).joinedload(OrderItem.product))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return Page(
        items=[project_for_vendor(o, vendor_id) for o in rows],
        total=total,
        page=page,
        limit=limit,
    )


def get_order_for_vendor(db: Session, vendor_id: VendorId, order_id: OrderId) -> VendorOrderProjection:
    order = (
        db.query(Order)
        .options(selectinload(Order.items).joinedload(OrderItem.product))
        .filter(Order.id == order_id)
        .first()
    )
    if not order:
        raise NotFoundError("Order", order_id)

    projection = project_for_vendor(order, vendor_id)
    if not projection.items:
        raise ForbiddenError("You have no items in this order")
    return projection
