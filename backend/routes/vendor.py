# backend/routes/vendor.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from utils.tokenJWT import role_required
from models.users import User, ROLE_VENDOR
from schemas.order import OrderStatusPatch, OrderStatusEnvelope
from schemas.reports import AnalyticsResponse, DashboardStatsResponse
from schemas.vendor import VendorOrderOut, VendorOrderEnvelope, VendorOrdersPage
from services.analytics import compute_analytics, dashboard_stats, DEFAULT_PERIOD
from services.vendor_orders import VendorOrderProjection, list_orders_for_vendor, get_order_for_vendor
from routes.orders import item_to_out, pagination_out, status_change

# Every route here requires the vendor role
router = APIRouter(prefix="/vendor", tags=["Vendor"])
vendor_only = role_required(ROLE_VENDOR)

def _projection_to_out(p: VendorOrderProjection) -> VendorOrderOut:
    o = p.order
    return VendorOrderOut(
        id=o.id,
        user_id=o.user_id,
        status=o.status,
        payment_method=o.payment_method,
        payment_status=o.payment_status,
        subtotal=o.subtotal,
        shipping_cost=o.shipping_cost,
        tax=o.tax,
        total=o.total,
        shipping_address=o.shipping_address,
        notes=o.notes,
        created_at=o.created_at,
        updated_at=o.updated_at,
        items=[item_to_out(it) for it in p.items],
        vendor_subtotal=p.vendor_subtotal,
    )

@router.get("/orders", response_model=VendorOrdersPage)
def list_vendor_orders(
    status: Optional[str] = Query(None, description="Filter by order status"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(vendor_only),
):
    result = list_orders_for_vendor(db, current_user.id, status=status, page=page, limit=limit)
    return VendorOrdersPage(
        orders=[_projection_to_out(p) for p in result.items],
        pagination=pagination_out(result),
    )

@router.get("/orders/{order_id}", response_model=VendorOrderEnvelope)
def get_vendor_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(vendor_only),
):
    return VendorOrderEnvelope(order=_projection_to_out(get_order_for_vendor(db, current_user.id, order_id)))

@router.patch("/orders/{order_id}/status", response_model=OrderStatusEnvelope)
def update_vendor_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(vendor_only),
):
    return status_change(db, order_id, payload.status, current_user, request)

@router.get("/analytics", response_model=AnalyticsResponse)
def get_sales_analytics(
    period: str = Query(DEFAULT_PERIOD, description="hour, day, month or year"),
    db: Session = Depends(get_db),
    current_user: User = Depends(vendor_only),
):
    report = compute_analytics(db, current_user.id, period)
    return AnalyticsResponse.model_validate(report)

@router.get("/dashboard-stats", response_model=DashboardStatsResponse)
def get_dashboard_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(vendor_only),
):
    return DashboardStatsResponse.model_validate(dashboard_stats(db, current_user.id))
