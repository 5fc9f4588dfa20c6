# services/cart_store.py
import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from models.cart import Cart, CartItem
from models.product import Product
from utils.errors import NotFoundError, ValidationError
from utils.ids import ProductId, UserId

logger = logging.getLogger(__name__)


def get_cart(db: Session, user_id: UserId, lock: bool = False) -> Cart:
    """Return the user's cart row, creating it on first use.

    With ``lock=True`` the row is selected ``FOR UPDATE`` so that every writer
    touching this user's cart (edits and checkout) is serialized on it.
    """
    q = db.query(Cart).filter(Cart.user_id == user_id)
    if lock:
        q = q.with_for_update()
    cart = q.first()
    if cart:
        return cart

    cart = Cart(user_id=user_id)
    db.add(cart)
    try:
        db.flush()
    except IntegrityError:
        # Another request created it first
        db.rollback()
        q = db.query(Cart).filter(Cart.user_id == user_id)
        if lock:
            q = q.with_for_update()
        cart = q.one()
    return cart


def _find_line(db: Session, cart: Cart, product_id: ProductId):
    return db.query(CartItem).filter(
        CartItem.cart_id == cart.id, CartItem.product_id == product_id
    ).first()


def add_item(db: Session, user_id: UserId, product_id: ProductId, quantity: int = 1) -> CartItem:
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")

    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError("Product", product_id)

    cart = get_cart(db, user_id, lock=True)
    item = _find_line(db, cart, product_id)
    if item:
        item.quantity += quantity
    else:
        # Snapshot the current price; never recomputed afterwards
        item = CartItem(
            cart_id=cart.id,
            product_id=product.id,
            quantity=quantity,
            price_at_time_of_adding=product.price,
        )
        db.add(item)

    try:
        db.commit()
    except IntegrityError:
        # A concurrent add inserted the same line first
        db.rollback()
        cart = get_cart(db, user_id, lock=True)
        item = _find_line(db, cart, product_id)
        if not item:
            raise
        item.quantity += quantity
        db.commit()
    db.refresh(item)
    logger.debug("cart add user=%s product=%s qty=%s", user_id, product_id, item.quantity)
    return item


def update_quantity(db: Session, user_id: UserId, product_id: ProductId, quantity: int) -> CartItem:
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")

    cart = get_cart(db, user_id, lock=True)
    item = _find_line(db, cart, product_id)
    if not item:
        db.rollback()
        raise NotFoundError("Cart item", product_id)

    item.quantity = quantity
    db.commit()
    db.refresh(item)
    return item


def remove_item(db: Session, user_id: UserId, product_id: ProductId) -> None:
    cart = get_cart(db, user_id, lock=True)
    db.query(CartItem).filter(
        CartItem.cart_id == cart.id, CartItem.product_id == product_id
    ).delete(synchronize_session=False)
    db.commit()


def clear(db: Session, user_id: UserId) -> None:
    cart = get_cart(db, user_id, lock=True)
    db.query(CartItem).filter(CartItem.cart_id == cart.id).delete(synchronize_session=False)
    db.commit()


def list_items(db: Session, user_id: UserId) -> List[CartItem]:
    """Cart lines with their products joined in, most recently added first."""
    return (
        db.query(CartItem)
        .join(Cart, Cart.id == CartItem.cart_id)
        .options(joinedload(CartItem.product))
        .filter(Cart.user_id == user_id)
        .order_by(CartItem.added_at.desc(), CartItem.id.desc())
        .all()
    )
