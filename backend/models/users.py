# backend/models/users.py
from sqlalchemy import Column, Integer, String, DateTime
from database import Base
from utils.money import utcnow

# Marketplace roles; vendors own products, buyers own carts and orders
ROLE_ADMIN = "admin"
ROLE_BUYER = "buyer"
ROLE_VENDOR = "vendor"

# Represents a user account with authentication details and system role
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False, default="")
    role = Column(String, nullable=False, default=ROLE_BUYER)
    status = Column(String, nullable=False, default="active")  # active / suspended
    created_at = Column(DateTime, default=utcnow)

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == ROLE_ADMIN

    @property
    def is_vendor(self) -> bool:
        return (self.role or "").lower() == ROLE_VENDOR
