# backend/models/product.py
from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint, DateTime
from sqlalchemy.orm import relationship
from database import Base
from utils.money import utcnow

# Catalog product owned by a single vendor.
# Catalog CRUD lives outside this service; only the fields read by the cart,
# checkout and analytics code are mapped here.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String)
    category = Column(String, index=True)

    # Current list price in minor units; carts and orders snapshot it.
    price = Column(Integer, CheckConstraint("price >= 0"), nullable=False)
    quantity = Column(Integer, CheckConstraint("quantity >= 0"), nullable=False, default=0)
    status = Column(String, default="active", index=True)

    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    vendor = relationship("User")
