import os
import random
import sys
import argparse
from datetime import timedelta
from typing import List, Optional

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from sqlalchemy.orm import Session

from database import SessionLocal, init_db
from models.order import Order, OrderItem, OrderStatus
from models.product import Product
from models.users import User, ROLE_BUYER
from utils.errors import NotFoundError, ValidationError
from utils.money import utcnow

# Configuration
SAMPLE_DAYS_BACK = 30 # Orders are spread over the last month
SAMPLE_PRODUCTS = 3 # How many of the vendor's products are sampled
MAX_SAMPLE_QTY = 5
SAMPLE_BUYER_EMAIL = "sample.buyer@example.com"
# End Configuration


def _sample_buyer(db: Session) -> User:
    """Reuse or create the buyer account that owns generated orders."""
    buyer = db.query(User).filter(User.email == SAMPLE_BUYER_EMAIL).first()
    if not buyer:
        buyer = User(username="sample-buyer", email=SAMPLE_BUYER_EMAIL, role=ROLE_BUYER)
        db.add(buyer)
        db.flush()
    return buyer


def create_sample_orders(db: Session, vendor_id: int, count: int = 10, rng: Optional[random.Random] = None) -> List[Order]:
    """Generates single-item orders for a vendor's products over the last 30 days."""
    rng = rng or random.Random()

    vendor = db.query(User).filter(User.id == vendor_id).first()
    if not vendor:
        raise NotFoundError("Vendor", vendor_id)

    products = (db.query(Product)
                .filter(Product.vendor_id == vendor_id)
                .order_by(Product.id.asc())
                .limit(SAMPLE_PRODUCTS)
                .all())
    if not products:
        raise ValidationError("No products found. Please create some products first.")

    buyer = _sample_buyer(db)
    now = utcnow()
    orders = []

    for _ in range(count):
        product = rng.choice(products)
        qty = rng.randint(1, MAX_SAMPLE_QTY)
        placed_at = now - timedelta(days=rng.randint(0, SAMPLE_DAYS_BACK - 1))
        subtotal = product.price * qty

        orders.append(Order(
            user_id=buyer.id,
            status=OrderStatus.DELIVERED.value,
            subtotal=subtotal,
            shipping_cost=0,
            tax=0,
            total=subtotal,
            created_at=placed_at,
            updated_at=placed_at,
            items=[OrderItem(
                position=0,
                product_id=product.id,
                vendor_id=vendor_id,
                quantity=qty,
                unit_price=product.price,
            )],
        ))

    db.add_all(orders)
    db.commit()
    return orders


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create sample orders for a vendor")
    parser.add_argument("vendor_id", type=int)
    parser.add_argument("--count", type=int, default=10)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args(argv)

    init_db()
    session = SessionLocal()
    try:
        orders = create_sample_orders(session, args.vendor_id, args.count, random.Random(args.seed))
        print(f"Sample orders created successfully: {len(orders)}")
    finally:
        session.close()


if __name__ == "__main__":
    main()
