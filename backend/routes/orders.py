# backend/routes/orders.py
import logging

from fastapi import APIRouter, Depends, Request, Query, status
from sqlalchemy.orm import Session, selectinload, joinedload

from config import settings
from database import get_db
from utils.tokenJWT import get_current_user, role_required
from utils.audit import write_log, client_ip
from utils.errors import NotFoundError, MarketplaceError
from models.users import User, ROLE_ADMIN
from models.order import Order, OrderItem
from schemas.order import (
    CheckoutPayload, OrderResponse, OrderEnvelope, OrderItemOut, OrdersPage, Pagination,
    OrderStatusPatch, OrderStatusEnvelope, OrderStatusOut,
)
from services.checkout import checkout
from services.order_status import update_status
from services.vendor_orders import Page, check_paging

router = APIRouter(tags=["Orders"])
logger = logging.getLogger(__name__)

def item_to_out(it: OrderItem) -> OrderItemOut:
    return OrderItemOut(
        product_id=it.product_id,
        product_name=it.product.name if it.product else "Deleted product",
        vendor_id=it.vendor_id,
        quantity=it.quantity,
        unit_price=it.unit_price,
        line_total=it.line_total,
    )

# Map Order model to OrderResponse schema
def order_to_out(order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        subtotal=order.subtotal,
        shipping_cost=order.shipping_cost,
        tax=order.tax,
        total=order.total,
        shipping_address=order.shipping_address,
        notes=order.notes,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=[item_to_out(it) for it in order.items],
    )

def pagination_out(page: Page) -> Pagination:
    return Pagination(page=page.page, limit=page.limit, total=page.total, pages=page.pages)

def status_change(db: Session, order_id: int, new_status: str, actor: User, request: Request) -> OrderStatusEnvelope:
    """Apply a status transition and audit it, successful or not."""
    try:
        order = update_status(db, order_id, new_status, actor)
    except MarketplaceError as e:
        write_log(db, user_id=actor.id, action="ORDER_STATUS_CHANGE", resource="orders", status="FAIL",
            ip=client_ip(request), meta={"order_id": order_id, "new": new_status, "reason": e.message})
        raise

    write_log(db, user_id=actor.id, action="ORDER_STATUS_CHANGE", resource="orders", status="SUCCESS",
        ip=client_ip(request), meta={"order_id": order.id, "new": order.status})
    return OrderStatusEnvelope(order=OrderStatusOut(id=order.id, status=order.status, updated_at=order.updated_at))


# Convert the caller's cart into an order
@router.post("/checkout", response_model=OrderEnvelope, status_code=status.HTTP_201_CREATED)
def checkout_cart(
    request: Request,
    payload: CheckoutPayload = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    payload = payload or CheckoutPayload()
    order = checkout(
        db,
        current_user.id,
        shipping_address=payload.shipping_address.model_dump() if payload.shipping_address else None,
        payment_method=payload.payment_method.value,
        payment_status=payload.payment_status.value,
        notes=payload.notes,
    )
    write_log(
        db, user_id=current_user.id, action="CHECKOUT", resource="orders", status="SUCCESS",
        ip=client_ip(request),
        meta={"order_id": order.id, "items": len(order.items), "total": order.total},
    )
    return OrderEnvelope(order=order_to_out(order))


# List the caller's own orders, newest first
@router.get("/orders", response_model=OrdersPage)
def list_my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    page, limit = check_paging(page, limit)
    q = db.query(Order).filter(Order.user_id == current_user.id)
    total = q.count()
    rows = (q.options(selectinload(Order.items).joinedload(OrderItem.product))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all())
    result = Page(items=rows, total=total, page=page, limit=limit)
    return OrdersPage(orders=[order_to_out(o) for o in rows], pagination=pagination_out(result))


# Get details of a specific order
@router.get("/orders/{order_id}", response_model=OrderEnvelope)
def get_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    o = db.query(Order).options(
        selectinload(Order.items).joinedload(OrderItem.product)
    ).filter(Order.id == order_id).first()

    # Other buyers' orders are reported as missing rather than forbidden
    if not o or (o.user_id != current_user.id and not current_user.is_admin):
        raise NotFoundError("Order", order_id)
    return OrderEnvelope(order=order_to_out(o))


# Drive the fulfillment state machine as an administrator
@router.patch("/orders/{order_id}/status", response_model=OrderStatusEnvelope)
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN))
):
    return status_change(db, order_id, payload.status, current_user, request)
