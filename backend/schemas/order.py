from pydantic import BaseModel, EmailStr
from typing import List, Optional
from datetime import datetime

from models.order import PaymentMethod, PaymentStatus


# Structured shipping address captured at checkout
class ShippingAddress(BaseModel):
    name: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None


# Optional checkout body; an empty POST checks out with defaults
class CheckoutPayload(BaseModel):
    shipping_address: Optional[ShippingAddress] = None
    payment_method: PaymentMethod = PaymentMethod.COD
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    notes: Optional[str] = None


# Output schema for an individual order line item
class OrderItemOut(BaseModel):
    product_id: int
    product_name: str
    vendor_id: int
    quantity: int
    unit_price: int
    line_total: int


# Output schema representing the full order details
class OrderResponse(BaseModel):
    id: int
    user_id: int
    status: str
    payment_method: str
    payment_status: str
    subtotal: int
    shipping_cost: int
    tax: int
    total: int
    shipping_address: ShippingAddress
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut]


class OrderEnvelope(BaseModel):
    order: OrderResponse


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


# Schema for paginated order lists
class OrdersPage(BaseModel):
    orders: List[OrderResponse]
    pagination: Pagination


# Schema for updating order status
class OrderStatusPatch(BaseModel):
    status: str


class OrderStatusOut(BaseModel):
    id: int
    status: str
    updated_at: datetime


class OrderStatusEnvelope(BaseModel):
    order: OrderStatusOut
