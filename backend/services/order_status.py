"""Order fulfillment state machine.

Status is kept at order granularity: any vendor with at least one line item in
the order, or an administrator, may move the whole order along the table
below. Writes are a compare-and-set on the current status so two concurrent
requests cannot both succeed from the same stale read.
"""
import logging
from typing import Dict, FrozenSet

from sqlalchemy.orm import Session

from models.order import Order, OrderItem, OrderStatus
from models.users import User
from utils.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from utils.ids import OrderId
from utils.money import utcnow

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Unknown order status '{value}', expected one of: {allowed}")


def can_transition(current, new) -> bool:
    return OrderStatus(new) in TRANSITIONS[OrderStatus(current)]


def allowed_next(current) -> FrozenSet[OrderStatus]:
    return TRANSITIONS[OrderStatus(current)]


def ensure_can_manage(db: Session, order: Order, actor: User) -> None:
    """Admins manage every order; vendors only orders holding their items."""
    if actor.is_admin:
        return
    if actor.is_vendor:
        has_items = db.query(OrderItem.id).filter(
            OrderItem.order_id == order.id, OrderItem.vendor_id == actor.id
        ).first()
        if has_items:
            return
    raise ForbiddenError("You have no items in this order")


def update_status(db: Session, order_id: OrderId, new_status, actor: User) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFoundError("Order", order_id)
    current = order.status

    ensure_can_manage(db, order, actor)

    # Unknown statuses are just another target outside the allowed set
    try:
        target = OrderStatus(new_status)
    except ValueError:
        raise InvalidTransitionError(current, str(new_status))
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target.value)

    # Compare-and-set: only succeeds if nobody moved the order since the read
    updated = db.query(Order).filter(
        Order.id == order.id, Order.status == current
    ).update(
        {Order.status: target.value, Order.updated_at: utcnow()},
        synchronize_session=False,
    )
    if updated != 1:
        db.rollback()
        logger.warning("Status change %s -> %s on order %s lost a race", current, target.value, order.id)
        raise ConflictError(f"Order {order.id} was modified concurrently, please reload and retry")

    db.commit()
    db.refresh(order)
    logger.info("Order %s moved %s -> %s by user %s", order.id, current, order.status, actor.id)
    return order
