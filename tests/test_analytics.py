"""Tests for vendor sales analytics and dashboard statistics."""

from datetime import datetime, timedelta

import pytest

from conftest import NOW, make_order, make_product
from services.analytics import ProductSales, TrendPoint, compute_analytics, dashboard_stats, period_start
from utils.errors import ValidationError


class TestPeriodStart:
    def test_rolling_windows(self):
        assert period_start("hour", NOW) == NOW - timedelta(hours=1)
        assert period_start("day", NOW) == NOW - timedelta(hours=24)

    def test_calendar_windows(self):
        assert period_start("month", NOW) == datetime(2026, 10, 1)
        assert period_start("year", NOW) == datetime(2026, 1, 1)

    def test_unsupported(self):
        with pytest.raises(ValidationError):
            period_start("fortnight", NOW)


class TestComputeAnalytics:
    def test_scenario_excludes_other_vendor(self, db, buyer, vendor, product_p, product_q):
        make_order(db, buyer, [(product_p, 2), (product_q, 1)], created_at=NOW - timedelta(hours=2))

        report = compute_analytics(db, vendor.id, "day", now=NOW)

        assert report.total_sales == 1000
        assert report.total_orders == 1
        assert report.total_items == 2
        assert report.product_sales == [ProductSales(name="Phone case", quantity=2, revenue=1000)]
        assert report.sales_trend == [TrendPoint(date="2026-10-19", sales=1000)]

    def test_vendor_without_products_gets_zero_report(self, db, admin):
        report = compute_analytics(db, admin.id, "year", now=NOW)

        assert (report.total_sales, report.total_orders, report.total_items) == (0, 0, 0)
        assert report.product_sales == []
        assert report.sales_trend == []
        assert report.average_order_value is None
        assert report.items_per_order is None

    def test_lower_bound_per_period(self, db, buyer, vendor, product_p):
        make_order(db, buyer, [(product_p, 1)], created_at=NOW - timedelta(minutes=30))
        make_order(db, buyer, [(product_p, 1)], created_at=NOW - timedelta(hours=5))
        make_order(db, buyer, [(product_p, 1)], created_at=datetime(2026, 10, 2, 8, 0))
        make_order(db, buyer, [(product_p, 1)], created_at=datetime(2026, 3, 15))
        make_order(db, buyer, [(product_p, 1)], created_at=datetime(2025, 12, 31, 23, 59))

        counts = {p: compute_analytics(db, vendor.id, p, now=NOW).total_orders for p in ("hour", "day", "month", "year")}

        assert counts == {"hour": 1, "day": 2, "month": 3, "year": 4}

    def test_trend_is_daily_and_sorted(self, db, buyer, vendor, product_p, product_r):
        make_order(db, buyer, [(product_p, 1)], created_at=datetime(2026, 10, 18, 23, 0))
        make_order(db, buyer, [(product_r, 2)], created_at=datetime(2026, 10, 5, 9, 0))
        make_order(db, buyer, [(product_p, 1), (product_r, 1)], created_at=datetime(2026, 10, 18, 1, 0))

        report = compute_analytics(db, vendor.id, "month", now=NOW)

        assert report.sales_trend == [
            TrendPoint(date="2026-10-05", sales=500),
            TrendPoint(date="2026-10-18", sales=500 + 500 + 250),
        ]
        assert report.total_orders == 3
        assert report.total_items == 5

    def test_product_sales_stable_order(self, db, buyer, vendor, product_p, product_r):
        make_order(db, buyer, [(product_r, 4)], created_at=NOW)
        make_order(db, buyer, [(product_p, 1)], created_at=NOW)

        report = compute_analytics(db, vendor.id, "day", now=NOW)

        # Highest revenue first, ties broken by name
        assert report.product_sales == [
            ProductSales(name="Charger", quantity=4, revenue=1000),
            ProductSales(name="Phone case", quantity=1, revenue=500),
        ]

    def test_idempotent(self, db, buyer, vendor, product_p, product_q):
        make_order(db, buyer, [(product_p, 2), (product_q, 3)], created_at=NOW)

        assert compute_analytics(db, vendor.id, "month", now=NOW) == compute_analytics(db, vendor.id, "month", now=NOW)

    def test_guarded_ratios(self, db, buyer, vendor, product_p, product_r):
        make_order(db, buyer, [(product_p, 1)], created_at=NOW)
        make_order(db, buyer, [(product_r, 1)], created_at=NOW)
        make_order(db, buyer, [(product_r, 1)], created_at=NOW)

        report = compute_analytics(db, vendor.id, "day", now=NOW)

        # 1000 / 3 = 333.33 -> 333 minor units
        assert report.average_order_value == 333
        assert report.items_per_order == 1.0

    def test_product_reassignment_keeps_sales_with_original_vendor(
        self, db, buyer, vendor, other_vendor, product_p, product_r, product_q
    ):
        make_order(db, buyer, [(product_p, 2)], created_at=NOW)
        product_p.vendor_id = other_vendor.id
        db.commit()

        mine = compute_analytics(db, vendor.id, "day", now=NOW)
        theirs = compute_analytics(db, other_vendor.id, "day", now=NOW)

        assert (mine.total_sales, mine.total_orders, mine.total_items) == (1000, 1, 2)
        assert mine.product_sales == [ProductSales(name="Phone case", quantity=2, revenue=1000)]
        assert (theirs.total_sales, theirs.total_orders) == (0, 0)
        assert dashboard_stats(db, vendor.id, now=NOW).total_sales == mine.total_sales

    def test_unsupported_period(self, db, vendor):
        with pytest.raises(ValidationError):
            compute_analytics(db, vendor.id, "decade", now=NOW)


def test_dashboard_stats(db, buyer, vendor, product_p, product_q):
    older = make_product(db, vendor, "Cable", 100)
    older.created_at = datetime(2026, 8, 1)
    db.commit()

    make_order(db, buyer, [(product_p, 2), (product_q, 1)], created_at=NOW)
    make_order(db, buyer, [(older, 3)], created_at=datetime(2026, 9, 20))

    stats = dashboard_stats(db, vendor.id, now=NOW)

    assert stats.total_products == 2
    assert stats.total_orders == 2
    assert stats.orders_this_month == 1
    assert stats.total_sales == 1000 + 300
    assert stats.sales_this_month == 1000
