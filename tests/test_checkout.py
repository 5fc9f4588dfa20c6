"""Tests for converting a cart into an order."""

import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from database import Base
from models.cart import CartItem
from models.order import Order, OrderStatus
from models.product import Product
from models.users import User, ROLE_BUYER, ROLE_VENDOR
from services import cart_store
from services.checkout import PricingPolicy, checkout
from utils.errors import ConflictError, ValidationError


class TestCheckout:
    def test_subtotal_is_sum_of_snapshots_and_cart_is_emptied(self, db, buyer, product_p, product_q):
        cart_store.add_item(db, buyer.id, product_p.id, 2)
        cart_store.add_item(db, buyer.id, product_q.id, 1)
        # Price changes after adding must not leak into the order
        product_p.price = 10_000
        db.commit()

        order = checkout(db, buyer.id)

        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == "unpaid"
        assert order.subtotal == 2 * 500 + 300
        assert order.total == order.subtotal + order.shipping_cost + order.tax
        assert cart_store.list_items(db, buyer.id) == []

    def test_items_snapshot_vendor_and_price(self, db, buyer, vendor, other_vendor, product_p, product_q):
        cart_store.add_item(db, buyer.id, product_p.id, 2)
        cart_store.add_item(db, buyer.id, product_q.id, 1)

        order = checkout(db, buyer.id)

        by_product = {it.product_id: it for it in order.items}
        assert by_product[product_p.id].vendor_id == vendor.id
        assert by_product[product_p.id].unit_price == 500
        assert by_product[product_p.id].line_total == 1000
        assert by_product[product_q.id].vendor_id == other_vendor.id

    def test_vendor_reassignment_does_not_rewrite_history(self, db, buyer, vendor, other_vendor, product_p):
        cart_store.add_item(db, buyer.id, product_p.id, 1)
        order = checkout(db, buyer.id)

        product_p.vendor_id = other_vendor.id
        db.commit()
        db.expire_all()

        assert db.get(Order, order.id).items[0].vendor_id == vendor.id

    def test_empty_cart(self, db, buyer):
        with pytest.raises(ValidationError, match="Cart is empty"):
            checkout(db, buyer.id)
        assert db.query(Order).count() == 0

    def test_shipping_address_and_payment(self, db, buyer, product_p):
        cart_store.add_item(db, buyer.id, product_p.id, 1)

        order = checkout(
            db,
            buyer.id,
            shipping_address={"name": "Ayesha", "street": "1 Mall Rd", "city": "Lahore", "postal_code": "54000"},
            payment_method="card",
            payment_status="paid",
            notes="Leave at the door",
        )

        assert order.shipping_address["city"] == "Lahore"
        assert order.shipping_address["phone"] is None
        assert order.payment_method == "card"
        assert order.payment_status == "paid"
        assert order.notes == "Leave at the door"

    def test_unknown_payment_method(self, db, buyer, product_p):
        cart_store.add_item(db, buyer.id, product_p.id, 1)
        with pytest.raises(ValidationError):
            checkout(db, buyer.id, payment_method="barter")
        assert len(cart_store.list_items(db, buyer.id)) == 1

    def test_quantity_edit_during_checkout_is_a_conflict(self, db, session_factory, buyer, product_p):
        cart_store.add_item(db, buyer.id, product_p.id, 3)
        buyer_id, product_id = buyer.id, product_p.id

        class EditingPolicy(PricingPolicy):
            # Pricing runs after the lines are read; commit an edit from another session here
            def shipping_for(self, subtotal):
                other = session_factory()
                try:
                    cart_store.update_quantity(other, buyer_id, product_id, 7)
                finally:
                    other.close()
                return 0

        with pytest.raises(ConflictError):
            checkout(db, buyer_id, policy=EditingPolicy())

        db.expire_all()
        assert db.query(Order).count() == 0
        assert [l.quantity for l in cart_store.list_items(db, buyer_id)] == [7]

    def test_failed_order_write_leaves_cart_intact(self, db, buyer, product_p, monkeypatch):
        cart_store.add_item(db, buyer.id, product_p.id, 3)

        def broken_flush(*args, **kwargs):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(db, "flush", broken_flush)
        with pytest.raises(SQLAlchemyError):
            checkout(db, buyer.id)
        monkeypatch.undo()

        assert db.query(Order).count() == 0
        assert [l.quantity for l in cart_store.list_items(db, buyer.id)] == [3]


class TestPricingPolicy:
    def test_defaults_are_zero(self):
        policy = PricingPolicy()
        assert policy.shipping_for(10_000) == 0
        assert policy.tax_for(10_000) == 0

    def test_flat_fee_and_free_threshold(self):
        policy = PricingPolicy(shipping_flat_fee=250, free_shipping_threshold=5_000)
        assert policy.shipping_for(4_999) == 250
        assert policy.shipping_for(5_000) == 0

    def test_tax_rounds_half_up(self):
        policy = PricingPolicy(tax_rate_bps=1750)  # 17.5%
        assert policy.tax_for(1_000) == 175
        assert policy.tax_for(2) == 0
        assert policy.tax_for(3) == 1  # 0.525 -> 1

    def test_totals_use_policy(self, db, buyer, product_p):
        cart_store.add_item(db, buyer.id, product_p.id, 2)

        order = checkout(db, buyer.id, policy=PricingPolicy(shipping_flat_fee=150, tax_rate_bps=1000))

        assert (order.subtotal, order.shipping_cost, order.tax, order.total) == (1000, 150, 100, 1250)


def test_concurrent_checkouts_create_exactly_one_order(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    setup = Session()
    vendor = User(username="v", email="v@example.com", role=ROLE_VENDOR)
    buyer = User(username="b", email="b@example.com", role=ROLE_BUYER)
    setup.add_all([vendor, buyer])
    setup.commit()
    p1 = Product(vendor_id=vendor.id, name="P1", price=500, quantity=10)
    p2 = Product(vendor_id=vendor.id, name="P2", price=200, quantity=10)
    setup.add_all([p1, p2])
    setup.commit()
    cart_store.add_item(setup, buyer.id, p1.id, 2)
    cart_store.add_item(setup, buyer.id, p2.id, 1)
    buyer_id = buyer.id
    setup.close()

    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def attempt():
        session = Session()
        try:
            barrier.wait()
            order = checkout(session, buyer_id)
            result = ("ok", order.subtotal)
        except ValidationError as e:
            result = ("empty", str(e))
        except ConflictError as e:
            result = ("conflict", str(e))
        finally:
            session.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    kinds = sorted(kind for kind, _ in outcomes)
    assert kinds == ["empty", "ok"]
    assert [detail for kind, detail in outcomes if kind == "ok"] == [1200]

    check = Session()
    try:
        assert check.query(Order).count() == 1
        assert check.query(CartItem).count() == 0
    finally:
        check.close()
    engine.dispose()
