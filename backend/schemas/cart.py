from pydantic import BaseModel, Field
from typing import List

# Request schema for adding an item to the cart
class CartAddItem(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)

# Request schema for updating cart item quantity
class CartUpdateItem(BaseModel):
    quantity: int

# Response schema for a single cart line
class CartItemOut(BaseModel):
    product_id: int
    name: str
    vendor_id: int
    quantity: int
    price_at_time_of_adding: int
    line_total: int

# Response schema for the entire cart summary
class CartOut(BaseModel):
    items: List[CartItemOut]
    total: int
