"""
Reporting tests.

Verifies:
- Named periods and custom date ranges resolve to half-open UTC bounds
- Sales summary counts only completed sales inside the range
- Daily totals, best sellers and dashboard counts
- Activity feed merges sales and stock movements, newest first
"""

from datetime import date, datetime

import pytest

from stockdesk.extensions import db
from stockdesk.models import Customer, Transaction, TransactionItem
from stockdesk.services import pos_service, reporting_service
from stockdesk.validation import ValidationError


TODAY = date(2026, 3, 18)  # a Wednesday


@pytest.fixture
def sale(db_session, warehouse):
    """sale(when, [(product, qty, price_cents)], payment_method=..., status=...) writes a Transaction."""
    counter = {"n": 0}

    def _sale(when, lines, payment_method="cash", status="completed"):
        counter["n"] += 1
        subtotal = sum(qty * price for _product, qty, price in lines)
        tx = Transaction(
            transaction_number=f"TXN-TEST-{counter['n']:03d}",
            warehouse_id=warehouse.id,
            subtotal_cents=subtotal,
            total_cents=subtotal,
            payment_method=payment_method,
            status=status,
            created_at=when,
        )
        db_session.add(tx)
        db_session.flush()
        for product, qty, price in lines:
            db_session.add(TransactionItem(
                transaction_id=tx.id,
                product_id=product.id,
                product_name=product.name,
                quantity=qty,
                unit_price_cents=price,
                subtotal_cents=qty * price,
            ))
        db_session.commit()
        return tx

    return _sale


@pytest.fixture
def week_of_sales(sale, make_product):
    tea = make_product("Tea")
    cake = make_product("Cake")
    sale(datetime(2026, 3, 18, 9, 30), [(tea, 2, 250), (cake, 1, 500)])
    sale(datetime(2026, 3, 18, 17, 0), [(cake, 1, 500)], payment_method="card")
    sale(datetime(2026, 3, 17, 23, 59), [(tea, 8, 250)])
    sale(datetime(2026, 3, 18, 12, 0), [(cake, 10, 500)], status="void")
    return tea, cake


class TestResolveRange:

    def test_today(self):
        assert reporting_service.resolve_range("today", today=TODAY) == (
            datetime(2026, 3, 18), datetime(2026, 3, 19),
        )

    def test_week_starts_on_monday(self):
        assert reporting_service.resolve_range("this_week", today=TODAY) == (
            datetime(2026, 3, 16), datetime(2026, 3, 23),
        )

    def test_month_end_in_leap_february(self):
        assert reporting_service.resolve_range("this_month", today=date(2028, 2, 10)) == (
            datetime(2028, 2, 1), datetime(2028, 3, 1),
        )

    def test_custom_range_includes_end_day(self):
        assert reporting_service.resolve_range(start="2026-03-01", end="2026-03-05") == (
            datetime(2026, 3, 1), datetime(2026, 3, 6),
        )
        assert reporting_service.resolve_range(start="2026-03-01") == (datetime(2026, 3, 1), None)
        assert reporting_service.resolve_range() == (None, None)

    @pytest.mark.parametrize("kwargs", [
        {"period": "fortnight"},
        {"start": "2026-03-05", "end": "2026-03-01"},
        {"start": "05/03/2026"},
    ])
    def test_invalid_ranges(self, kwargs):
        with pytest.raises(ValidationError):
            reporting_service.resolve_range(**kwargs, today=TODAY)


class TestSalesSummary:

    def test_single_day(self, week_of_sales):
        report = reporting_service.sales_summary(start="2026-03-18", end="2026-03-18", today=TODAY)

        assert report["sales_count"] == 2
        assert report["revenue_cents"] == 1500
        assert report["average_sale_cents"] == 750
        assert report["items_sold"] == 4
        assert report["today_revenue_cents"] == 1500
        assert report["by_payment_method"] == [
            {"payment_method": "card", "sales_count": 1, "revenue_cents": 500},
            {"payment_method": "cash", "sales_count": 1, "revenue_cents": 1000},
        ]
        assert report["start"] == "2026-03-18T00:00:00Z"
        assert report["end"] == "2026-03-19T00:00:00Z"

    def test_all_time_rounds_average_half_up(self, week_of_sales):
        report = reporting_service.sales_summary(today=TODAY)

        assert report["sales_count"] == 3
        assert report["revenue_cents"] == 3500
        assert report["average_sale_cents"] == 1167
        assert report["start"] is None and report["end"] is None

    def test_today_total_ignores_requested_range(self, week_of_sales):
        report = reporting_service.sales_summary("yesterday", today=TODAY)
        assert report["revenue_cents"] == 2000
        assert report["today_revenue_cents"] == 1500

    def test_empty(self, db_session):
        report = reporting_service.sales_summary("today", today=TODAY)
        assert report["sales_count"] == 0
        assert report["average_sale_cents"] == 0
        assert report["by_payment_method"] == []


def test_daily_sales(week_of_sales):
    report = reporting_service.daily_sales("this_week", today=TODAY)
    assert report["rows"] == [
        {"day": "2026-03-17", "sales_count": 1, "revenue_cents": 2000},
        {"day": "2026-03-18", "sales_count": 2, "revenue_cents": 1500},
    ]


def test_top_products(week_of_sales):
    tea, cake = week_of_sales

    rows = reporting_service.top_products(today=TODAY)["rows"]
    assert rows == [
        {"product_id": tea.id, "name": "Tea", "units_sold": 10, "revenue_cents": 2500},
        {"product_id": cake.id, "name": "Cake", "units_sold": 2, "revenue_cents": 1000},
    ]

    assert [r["name"] for r in reporting_service.top_products("today", limit=1, today=TODAY)["rows"]] == ["Cake"]


def test_dashboard_overview(week_of_sales, make_product, admin_user):
    make_product("Retired", is_active=False)
    db.session.add(Customer(name="Acme"))
    db.session.commit()

    overview = reporting_service.dashboard_overview()

    assert overview["sales_count"] == 3
    assert overview["revenue_cents"] == 3500
    assert overview["active_products"] == 2
    assert overview["active_users"] == 1
    assert overview["customers"] == 1
    assert overview["active_loans"] == 0
    assert overview["low_stock_count"] == 2


def test_recent_activity(make_product, warehouse, stock_in):
    tea = make_product("Tea")
    stock_in(tea, warehouse, 5)
    tx = pos_service.checkout([{"product_id": tea.id, "quantity": 2, "price_cents": 300}], warehouse.id, tax_cents=0)

    items = reporting_service.recent_activity()

    assert sorted(i["type"] for i in items) == ["sale", "stock_in", "stock_out"]
    sale_entry = next(i for i in items if i["type"] == "sale")
    assert sale_entry["reference"] == tx.transaction_number
    assert sale_entry["amount_cents"] == 600
    assert "walk-in customer" in sale_entry["description"]
    stamps = [i["timestamp"] for i in items]
    assert stamps == sorted(stamps, reverse=True)
    assert len(reporting_service.recent_activity(limit=1)) == 1


class TestReportRoutes:

    def test_summary_endpoint(self, client, admin_headers, week_of_sales):
        response = client.get("/api/reports/sales-summary?start=2026-03-17&end=2026-03-17", headers=admin_headers)
        assert response.status_code == 200
        assert response.json["revenue_cents"] == 2000

    def test_bad_period_is_400(self, client, admin_headers):
        response = client.get("/api/reports/sales-summary?period=fortnight", headers=admin_headers)
        assert response.status_code == 400
        assert "period must be one of" in response.json["error"]

    def test_dashboard_and_activity(self, client, admin_headers):
        assert client.get("/api/reports/dashboard", headers=admin_headers).json["sales_count"] == 0
        assert client.get("/api/reports/activity", headers=admin_headers).json == {"items": [], "count": 0}

    def test_cashier_cannot_view_reports(self, client, cashier_headers):
        response = client.get("/api/reports/dashboard", headers=cashier_headers)
        assert response.status_code == 403
        assert response.json["required_permission"] == "VIEW_REPORTS"
