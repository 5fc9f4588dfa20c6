# schemas/reports.py
from typing import List, Optional
from pydantic import BaseModel

# Per-product totals within a reporting period
class ProductSalesItem(BaseModel):
    name: str
    quantity: int
    revenue: int

    class Config:
        from_attributes = True

# One calendar day of revenue
class SalesTrendItem(BaseModel):
    date: str
    sales: int

    class Config:
        from_attributes = True

class AnalyticsResponse(BaseModel):
    period: str
    total_sales: int
    total_orders: int
    total_items: int
    average_order_value: Optional[int] = None
    items_per_order: Optional[float] = None
    product_sales: List[ProductSalesItem]
    sales_trend: List[SalesTrendItem]

    class Config:
        from_attributes = True

class DashboardStatsResponse(BaseModel):
    total_products: int
    products_this_month: int
    total_orders: int
    orders_this_month: int
    total_sales: int
    sales_this_month: int

    class Config:
        from_attributes = True
