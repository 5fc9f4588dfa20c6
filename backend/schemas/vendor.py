from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from schemas.order import OrderItemOut, Pagination, ShippingAddress


# An order as seen by one vendor: only that vendor's items
class VendorOrderOut(BaseModel):
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
    vendor_subtotal: int


class VendorOrderEnvelope(BaseModel):
    order: VendorOrderOut


class VendorOrdersPage(BaseModel):
    orders: List[VendorOrderOut]
    pagination: Pagination
