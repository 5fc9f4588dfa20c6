# backend/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base
from utils.money import utcnow

# One cart per user. The row is the lock anchor that serializes checkout
# against concurrent cart edits for the same user.
class Cart(Base):
    __tablename__ = "carts" # Table name

    id = Column(Integer, primary_key=True, index=True) # Primary key
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, index=True, nullable=False) # Owning user
    created_at = Column(DateTime, default=utcnow) # Creation timestamp

    # One-to-many relationship with cart lines
    items = relationship("CartItem", back_populates="cart", cascade="all, delete-orphan")


# A single (product, quantity, price snapshot) line within a cart
class CartItem(Base):
    __tablename__ = "cart_items" # Table name

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id"), index=True, nullable=False) # Parent cart
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False) # Product
    quantity = Column(Integer, CheckConstraint("quantity >= 1"), nullable=False, default=1)
    price_at_time_of_adding = Column(Integer, nullable=False) # Unit price snapshot, minor units
    added_at = Column(DateTime, default=utcnow, index=True)

    cart = relationship("Cart", back_populates="items") # Relationship back to Cart
    product = relationship("Product") # Relationship to Product

    __table_args__ = (
        # A product appears at most once per cart
        UniqueConstraint("cart_id", "product_id", name="uq_cartitem_cart_product"),
    )

    @property
    def line_total(self) -> int:
        return self.quantity * self.price_at_time_of_adding
