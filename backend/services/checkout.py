# services/checkout.py
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from config import settings
from models.cart import CartItem
from models.order import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus
from services.cart_store import get_cart
from utils.errors import ConflictError, NotFoundError, ValidationError
from utils.ids import UserId
from utils.money import percent_of, utcnow

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("name", "street", "city", "state", "postal_code", "phone", "email")


@dataclass(frozen=True)
class PricingPolicy:
    """Shipping and tax rules applied to a cart subtotal (minor units)."""

    shipping_flat_fee: int = 0
    free_shipping_threshold: int = 0
    tax_rate_bps: int = 0

    @classmethod
    def from_settings(cls) -> "PricingPolicy":
        return cls(
            shipping_flat_fee=settings.SHIPPING_FLAT_FEE,
            free_shipping_threshold=settings.FREE_SHIPPING_THRESHOLD,
            tax_rate_bps=settings.TAX_RATE_BPS,
        )

    def shipping_for(self, subtotal: int) -> int:
        if self.free_shipping_threshold and subtotal >= self.free_shipping_threshold:
            return 0
        return self.shipping_flat_fee

    def tax_for(self, subtotal: int) -> int:
        return percent_of(subtotal, self.tax_rate_bps)


def _coerce(enum_cls, value, field: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field} '{value}', expected one of: {allowed}")


def checkout(
    db: Session,
    user_id: UserId,
    *,
    shipping_address: Optional[dict] = None,
    payment_method: str = PaymentMethod.COD.value,
    payment_status: str = PaymentStatus.UNPAID.value,
    notes: Optional[str] = None,
    policy: Optional[PricingPolicy] = None,
) -> Order:
    """Turn the user's cart into a single pending order and empty the cart.

    The order is written first and the cart lines are deleted in the same
    transaction. If the delete does not consume exactly the lines that were
    read, at the quantities that were read, a concurrent checkout or cart edit
    got there first and everything is rolled back. Never retried.
    """
    payment_method = _coerce(PaymentMethod, payment_method, "payment method")
    payment_status = _coerce(PaymentStatus, payment_status, "payment status")
    policy = policy or PricingPolicy.from_settings()
    address = {k: (shipping_address or {}).get(k) for k in ADDRESS_FIELDS}

    cart = get_cart(db, user_id, lock=True)
    lines = (
        db.query(CartItem)
        .options(joinedload(CartItem.product))
        .filter(CartItem.cart_id == cart.id)
        .order_by(CartItem.added_at.asc(), CartItem.id.asc())
        .all()
    )
    if not lines:
        db.rollback()
        raise ValidationError("Cart is empty")

    items = []
    for position, line in enumerate(lines):
        if line.product is None:
            db.rollback()
            raise NotFoundError("Product", line.product_id)
        items.append(OrderItem(
            position=position,
            product_id=line.product_id,
            vendor_id=line.product.vendor_id,
            quantity=line.quantity,
            unit_price=line.price_at_time_of_adding,
        ))

    subtotal = sum(it.line_total for it in items)
    shipping_cost = policy.shipping_for(subtotal)
    tax = policy.tax_for(subtotal)
    now = utcnow()

    order = Order(
        user_id=user_id,
        status=OrderStatus.PENDING.value,
        payment_method=payment_method,
        payment_status=payment_status,
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        tax=tax,
        total=subtotal + shipping_cost + tax,
        shipping_name=address["name"],
        shipping_street=address["street"],
        shipping_city=address["city"],
        shipping_state=address["state"],
        shipping_postal_code=address["postal_code"],
        shipping_phone=address["phone"],
        shipping_email=address["email"],
        notes=notes,
        created_at=now,
        updated_at=now,
        items=items,
    )

    # Each line is consumed only if it still holds the quantity that was priced
    cart_id = cart.id
    read_lines = [and_(CartItem.id == line.id, CartItem.quantity == line.quantity) for line in lines]
    try:
        db.add(order)
        db.flush()

        consumed = db.query(CartItem).filter(
            CartItem.cart_id == cart_id, or_(*read_lines)
        ).delete(synchronize_session=False)
        if consumed != len(read_lines):
            db.rollback()
            logger.warning(
                "Checkout for user %s lost a race: read %s cart lines, consumed %s",
                user_id, len(read_lines), consumed,
            )
            remaining = db.query(CartItem).filter(CartItem.cart_id == cart_id).count()
            if remaining == 0:
                raise ValidationError("Cart is empty")
            raise ConflictError("Cart changed during checkout, please try again")

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Checkout failed for user %s, cart left intact", user_id)
        raise

    db.refresh(order)
    logger.info(
        "Order %s placed by user %s: %s items, total %s", order.id, user_id, len(items), order.total
    )
    return order
