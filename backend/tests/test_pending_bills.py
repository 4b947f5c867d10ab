"""
Pending bill tests.

Verifies:
- Creating a bill snapshots the cart and never touches stock
- Merging bumps existing lines at the bill's unit price and appends new ones
- Closed bills are read-only; deleting cascades items
- Open bills list newest first with search on name/phone
"""

from datetime import timedelta

import pytest

from stockdesk.extensions import db
from stockdesk.models import PendingBill, PendingBillItem, StockMovement
from stockdesk.services import pending_bill_service
from stockdesk.services.pending_bill_service import PendingBillError
from stockdesk.validation import NotFoundError, ValidationError


def line(product, quantity, price_cents):
    return {"product_id": product.id, "quantity": quantity, "price_cents": price_cents}


class TestCreateBill:

    def test_create_snapshots_cart(self, make_product, warehouse):
        tea = make_product("Tea")
        bill = pending_bill_service.create_bill("Alice", [line(tea, 2, 150)], warehouse.id, customer_phone="555-1234")

        assert bill.status == "open"
        assert len(bill.items) == 1
        item = bill.items[0]
        assert (item.product_name, item.quantity, item.unit_price_cents, item.subtotal_cents) == ("Tea", 2, 150, 300)
        assert pending_bill_service.bill_total(bill.id) == 300
        assert db.session.query(StockMovement).count() == 0

    def test_duplicate_cart_lines_are_folded(self, make_product, warehouse):
        tea = make_product("Tea")
        bill = pending_bill_service.create_bill("Alice", [line(tea, 1, 150), line(tea, 2, 999)], warehouse.id)
        assert len(bill.items) == 1
        assert bill.items[0].quantity == 3
        assert bill.items[0].subtotal_cents == 450

    def test_customer_name_required(self, make_product, warehouse):
        tea = make_product("Tea")
        with pytest.raises(ValidationError, match="Customer name is required"):
            pending_bill_service.create_bill("   ", [line(tea, 1, 100)], warehouse.id)

    def test_empty_cart_rejected(self, warehouse):
        with pytest.raises(ValidationError, match="Cart is empty"):
            pending_bill_service.create_bill("Alice", [], warehouse.id)


class TestMerge:

    def test_merge_uses_bill_price_for_existing_lines(self, make_product, warehouse):
        tea = make_product("Tea")
        cake = make_product("Cake")
        bill = pending_bill_service.create_bill("Bob", [line(tea, 2, 100)], warehouse.id)

        merged = pending_bill_service.merge_cart_into(bill.id, [line(tea, 3, 500), line(cake, 1, 400)])

        by_product = {i.product_id: i for i in merged.items}
        assert by_product[tea.id].quantity == 5
        assert by_product[tea.id].unit_price_cents == 100
        assert by_product[tea.id].subtotal_cents == 500
        assert by_product[cake.id].quantity == 1
        assert by_product[cake.id].unit_price_cents == 400
        assert merged.total_cents == 900

    def test_merge_is_all_or_nothing(self, make_product, warehouse):
        tea = make_product("Tea")
        bill = pending_bill_service.create_bill("Bob", [line(tea, 2, 100)], warehouse.id)

        bad_cart = [line(tea, 1, 100), {"product_id": 4242, "quantity": 1, "price_cents": 1}]
        with pytest.raises(NotFoundError):
            pending_bill_service.merge_cart_into(bill.id, bad_cart)

        items = db.session.query(PendingBillItem).filter_by(bill_id=bill.id).all()
        assert [(i.product_id, i.quantity) for i in items] == [(tea.id, 2)]

    def test_merge_into_closed_bill_is_refused(self, make_product, warehouse):
        tea = make_product("Tea")
        bill = pending_bill_service.create_bill("Bob", [line(tea, 1, 100)], warehouse.id)
        pending_bill_service.close_bill(bill.id)

        with pytest.raises(PendingBillError):
            pending_bill_service.merge_cart_into(bill.id, [line(tea, 1, 100)])

    def test_merge_touches_updated_at(self, make_product, warehouse):
        tea = make_product("Tea")
        bill = pending_bill_service.create_bill("Bob", [line(tea, 1, 100)], warehouse.id)
        bill.updated_at = bill.updated_at - timedelta(hours=1)
        db.session.commit()
        before = bill.updated_at

        merged = pending_bill_service.merge_cart_into(bill.id, [line(tea, 1, 100)])
        assert merged.updated_at > before


class TestLifecycle:

    def test_load_to_cart(self, make_product, warehouse):
        tea = make_product("Tea")
        bill = pending_bill_service.create_bill("Carol", [line(tea, 2, 150)], warehouse.id)

        cart = pending_bill_service.load_to_cart(bill.id)
        assert cart == [{
            "product_id": tea.id,
            "name": "Tea",
            "quantity": 2,
            "price_cents": 150,
            "subtotal_cents": 300,
        }]

    def test_remove_item(self, make_product, warehouse):
        tea = make_product("Tea")
        cake = make_product("Cake")
        bill = pending_bill_service.create_bill("Carol", [line(tea, 1, 100), line(cake, 1, 300)], warehouse.id)
        tea_item = next(i for i in bill.items if i.product_id == tea.id)

        updated = pending_bill_service.remove_item(bill.id, tea_item.id)
        assert [i.product_id for i in updated.items] == [cake.id]
        assert updated.total_cents == 300

        with pytest.raises(NotFoundError):
            pending_bill_service.remove_item(bill.id, tea_item.id)

    def test_delete_cascades_items(self, make_product, warehouse):
        tea = make_product("Tea")
        bill = pending_bill_service.create_bill("Dan", [line(tea, 1, 100)], warehouse.id)

        pending_bill_service.delete_bill(bill.id)

        assert db.session.get(PendingBill, bill.id) is None
        assert db.session.query(PendingBillItem).count() == 0

    def test_closed_bill_cannot_be_loaded_or_closed_again(self, make_product, warehouse):
        tea = make_product("Tea")
        bill = pending_bill_service.create_bill("Dan", [line(tea, 1, 100)], warehouse.id)
        pending_bill_service.close_bill(bill.id)

        with pytest.raises(PendingBillError):
            pending_bill_service.load_to_cart(bill.id)
        with pytest.raises(PendingBillError):
            pending_bill_service.close_bill(bill.id)


class TestListing:

    def test_open_bills_newest_first(self, make_product, warehouse):
        tea = make_product("Tea")
        older = pending_bill_service.create_bill("Older", [line(tea, 1, 100)], warehouse.id)
        newer = pending_bill_service.create_bill("Newer", [line(tea, 1, 100)], warehouse.id)
        older.updated_at = older.updated_at - timedelta(minutes=5)
        db.session.commit()
        closed = pending_bill_service.create_bill("Closed", [line(tea, 1, 100)], warehouse.id)
        pending_bill_service.close_bill(closed.id)

        ids = [b.id for b in pending_bill_service.list_open_bills()]
        assert ids == [newer.id, older.id]

    def test_search_by_name_or_phone(self, make_product, warehouse):
        tea = make_product("Tea")
        alice = pending_bill_service.create_bill("Alice Smith", [line(tea, 1, 100)], warehouse.id)
        bob = pending_bill_service.create_bill("Bob", [line(tea, 1, 100)], warehouse.id, customer_phone="0711-222")

        assert [b.id for b in pending_bill_service.list_open_bills("SMITH")] == [alice.id]
        assert [b.id for b in pending_bill_service.list_open_bills("711")] == [bob.id]
