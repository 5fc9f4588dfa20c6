# backend/routes/cart.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log, client_ip
from models.users import User
from models.cart import CartItem
from schemas.cart import CartAddItem, CartUpdateItem, CartOut, CartItemOut
from services import cart_store

router = APIRouter(prefix="/cart", tags=["Cart"])

def _line_to_out(it: CartItem) -> CartItemOut:
    return CartItemOut(
        product_id=it.product_id,
        name=it.product.name if it.product else "",
        vendor_id=it.product.vendor_id if it.product else 0,
        quantity=it.quantity,
        price_at_time_of_adding=it.price_at_time_of_adding,
        line_total=it.line_total,
    )

def _cart_out(db: Session, user_id: int) -> CartOut:
    items = [_line_to_out(it) for it in cart_store.list_items(db, user_id)]
    return CartOut(items=items, total=sum(i.line_total for i in items))

@router.get("", response_model=CartOut)
def get_cart(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _cart_out(db, current_user.id)

@router.post("", response_model=CartItemOut)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    item = cart_store.add_item(db, current_user.id, payload.product_id, payload.quantity)
    out = _line_to_out(item)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_ADD",
        resource="cart",
        ip=client_ip(request),
        meta={"product_id": payload.product_id, "qty": payload.quantity, "line_qty": out.quantity},
    )
    return out

@router.put("/{product_id}", response_model=CartItemOut)
def update_cart_item(
    product_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    item = cart_store.update_quantity(db, current_user.id, product_id, payload.quantity)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_UPDATE",
        resource="cart",
        ip=client_ip(request),
        meta={"product_id": product_id, "qty": payload.quantity},
    )
    return _line_to_out(item)

@router.delete("/{product_id}", response_model=CartOut)
def remove_cart_item(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart_store.remove_item(db, current_user.id, product_id)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_REMOVE",
        resource="cart",
        ip=client_ip(request),
        meta={"product_id": product_id},
    )
    return _cart_out(db, current_user.id)

@router.delete("", response_model=CartOut)
def clear_cart(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart_store.clear(db, current_user.id)
    write_log(db, user_id=current_user.id, action="CART_CLEAR", resource="cart", ip=client_ip(request))
    return CartOut(items=[], total=0)
