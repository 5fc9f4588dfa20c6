"""Pytest fixtures for the marketplace backend tests."""

import os

# Keep the application's own engine in memory; tests bind their own sessions.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
import models.users  # noqa: F401
import models.product  # noqa: F401
import models.cart  # noqa: F401
import models.order  # noqa: F401
import models.log  # noqa: F401
from models.order import Order, OrderItem, OrderStatus
from models.product import Product
from models.users import User, ROLE_ADMIN, ROLE_BUYER, ROLE_VENDOR
from utils.tokenJWT import create_access_token

NOW = datetime(2026, 10, 19, 12, 0, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def _user(db, username, role):
    user = User(username=username, email=f"{username}@example.com", role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def buyer(db):
    return _user(db, "buyer", ROLE_BUYER)


@pytest.fixture
def other_buyer(db):
    return _user(db, "other-buyer", ROLE_BUYER)


@pytest.fixture
def vendor(db):
    return _user(db, "vendor-v", ROLE_VENDOR)


@pytest.fixture
def other_vendor(db):
    return _user(db, "vendor-w", ROLE_VENDOR)


@pytest.fixture
def admin(db):
    return _user(db, "admin", ROLE_ADMIN)


def make_product(db, vendor, name, price, quantity=100):
    product = Product(vendor_id=vendor.id, name=name, price=price, quantity=quantity, category="general")
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@pytest.fixture
def product_p(db, vendor):
    return make_product(db, vendor, "Phone case", 500)


@pytest.fixture
def product_r(db, vendor):
    return make_product(db, vendor, "Charger", 250)


@pytest.fixture
def product_q(db, other_vendor):
    return make_product(db, other_vendor, "Headphones", 300)


def make_order(db, buyer, lines, created_at=NOW, status=OrderStatus.PENDING.value):
    """Insert an order directly; ``lines`` is a list of (product, quantity)."""
    items = [
        OrderItem(
            position=i,
            product_id=product.id,
            vendor_id=product.vendor_id,
            quantity=qty,
            unit_price=product.price,
        )
        for i, (product, qty) in enumerate(lines)
    ]
    subtotal = sum(it.line_total for it in items)
    order = Order(
        user_id=buyer.id,
        status=status,
        subtotal=subtotal,
        shipping_cost=0,
        tax=0,
        total=subtotal,
        created_at=created_at,
        updated_at=created_at,
        items=items,
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


def auth_headers(user):
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient
    from main import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
