"""
Notification derivation tests.

Verifies:
- Expiry buckets around today and the warning window
- Low stock sums balances across warehouses and falls back to the default threshold
- Each rule produces its stable id
- The feed keeps read flags across refreshes and forgets vanished ids
"""

from datetime import date, timedelta

from stockdesk.models import Customer, SupportTicket
from stockdesk.services import loan_service, notification_service, stock_ledger_service
from stockdesk.services.notification_service import (
    EXPIRY_EXPIRED,
    EXPIRY_OK,
    EXPIRY_SOON,
    EXPIRY_TODAY,
    NotificationFeed,
    classify_expiry,
)
from stockdesk.time_utils import today


TODAY = date(2026, 3, 15)


class TestClassifyExpiry:

    def test_yesterday_is_expired(self):
        status = classify_expiry(TODAY - timedelta(days=1), TODAY)
        assert status.status == EXPIRY_EXPIRED
        assert status.days_remaining == -1

    def test_today_is_not_expired(self):
        status = classify_expiry(TODAY, TODAY)
        assert status.status == EXPIRY_TODAY
        assert status.days_remaining == 0

    def test_window_edges(self):
        assert classify_expiry(TODAY + timedelta(days=30), TODAY).status == EXPIRY_SOON
        assert classify_expiry(TODAY + timedelta(days=31), TODAY).status == EXPIRY_OK

    def test_no_expiry(self):
        assert classify_expiry(None, TODAY) is None


class TestLowStock:

    def test_total_across_warehouses_at_or_below_min(self, make_product, warehouse, second_warehouse, stock_in):
        low = make_product("Low", min_stock_level=5)
        stock_in(low, warehouse, 3)
        stock_in(low, second_warehouse, 1)
        fine = make_product("Fine", min_stock_level=5)
        stock_in(fine, warehouse, 3)
        stock_in(fine, second_warehouse, 3)

        rows = notification_service.low_stock_products()
        assert [r["product_id"] for r in rows] == [low.id]
        assert rows[0]["total_stock"] == 4
        assert rows[0]["threshold"] == 5

    def test_default_threshold_when_min_is_zero(self, make_product, warehouse, stock_in):
        nine = make_product("Nine")
        stock_in(nine, warehouse, 9)
        eleven = make_product("Eleven")
        stock_in(eleven, warehouse, 11)
        empty = make_product("Empty")

        ids = [r["product_id"] for r in notification_service.low_stock_products()]
        assert ids == [empty.id, nine.id]

    def test_inactive_products_are_ignored(self, make_product):
        make_product("Retired", is_active=False)
        assert notification_service.low_stock_products() == []


class TestDerive:

    def test_expired_items_each_get_an_alert(self, make_product, warehouse, stock_in):
        first = make_product("Milk", expiry_date=today() - timedelta(days=2))
        second = make_product("Bread", expiry_date=today() - timedelta(days=1))
        make_product("Cheese", expiry_date=today() + timedelta(days=3))
        make_product("Salt", expiry_date=today() + timedelta(days=400))
        for p in (first, second):
            stock_in(p, warehouse, 50)

        notifs = {n.id: n for n in notification_service.derive_notifications()}

        assert notifs[f"expired-{first.id}"].type == "alert"
        assert notifs[f"expired-{second.id}"].type == "alert"
        assert notifs["expiring-soon"].message.startswith("1 product(s)")

    def test_loan_and_ticket_rules(self, db_session):
        customer = Customer(name="Zed")
        db_session.add(customer)
        db_session.add(SupportTicket(subject="Printer jammed", status="open", priority="normal"))
        db_session.add(SupportTicket(subject="Done", status="closed", priority="normal"))
        db_session.commit()
        loan_service.create_loan(customer.id, 10_000, due_date=today() - timedelta(days=1))
        loan_service.create_loan(customer.id, 5_000)

        notifs = {n.id: n for n in notification_service.derive_notifications()}

        assert notifs["pending-loans"].message.startswith("2 loan(s)")
        assert notifs["overdue-loans"].type == "alert"
        assert notifs["overdue-loans"].message.startswith("1 loan(s)")
        assert notifs["open-tickets"].message.startswith("1 support ticket(s)")

    def test_paid_loans_are_not_reported(self, db_session):
        loan = loan_service.create_loan(None, 1_000, due_date=today() - timedelta(days=10))
        loan_service.record_payment(loan.id, 1_000)

        ids = {n.id for n in notification_service.derive_notifications()}
        assert "pending-loans" not in ids
        assert "overdue-loans" not in ids


class TestFeed:

    def test_read_flag_survives_refresh(self, make_product):
        make_product("Low")
        feed = NotificationFeed()
        feed.refresh()
        assert feed.unread_count == 1

        assert feed.mark_read("low-stock") is True
        feed.refresh()

        assert feed.unread_count == 0
        assert feed.summary()["notifications"][0]["read"] is True

    def test_vanished_ids_lose_read_state(self, make_product, warehouse, stock_in):
        product = make_product("Low")
        feed = NotificationFeed()
        feed.refresh()
        feed.mark_all_read()

        stock_in(product, warehouse, 100)
        assert feed.refresh() == []

        stock_ledger_service.record_movement(product.id, warehouse.id, "out", 100)
        fresh = feed.refresh()
        assert [n.read for n in fresh] == [False]

    def test_mark_unknown_id(self):
        assert NotificationFeed().mark_read("nope") is False

    def test_summary_counts(self, make_product):
        make_product("Old", expiry_date=today() - timedelta(days=1))
        feed = NotificationFeed()
        feed.refresh()
        summary = feed.summary()
        assert summary["alert_count"] == 1
        assert summary["warning_count"] == 1
        assert summary["unread_count"] == 2
        assert summary["refreshed_at"].endswith("Z")
