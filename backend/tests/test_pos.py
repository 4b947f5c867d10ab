"""
Point of sale tests.

Verifies:
- Checkout writes the transaction, its items and one out-movement per line
- Insufficient stock aborts the whole sale
- Extra-only items are taken from the Extra warehouse
- Paying a pending bill closes it
- Receipt payload and QR rendering
"""

import base64
import json

import pytest

from stockdesk.extensions import db
from stockdesk.models import PendingBill, StockMovement, Transaction, TransactionItem
from stockdesk.services import pending_bill_service, pos_service, settings_service, stock_ledger_service, warehouse_service
from stockdesk.services.stock_ledger_service import InsufficientStockError
from stockdesk.validation import ValidationError


def line(product, quantity, price_cents):
    return {"product_id": product.id, "quantity": quantity, "price_cents": price_cents}


class TestCheckout:

    def test_checkout_records_sale_and_movements(self, make_product, warehouse, stock_in):
        tea = make_product("Tea")
        cake = make_product("Cake")
        stock_in(tea, warehouse, 10)
        stock_in(cake, warehouse, 3)

        tx = pos_service.checkout([line(tea, 2, 150), line(cake, 1, 400)], warehouse.id, tax_cents=0)

        assert tx.transaction_number.startswith("TXN-")
        assert tx.subtotal_cents == 700
        assert tx.total_cents == 700
        assert db.session.query(TransactionItem).filter_by(transaction_id=tx.id).count() == 2
        assert stock_ledger_service.get_balance(tea.id, warehouse.id) == 8
        assert stock_ledger_service.get_balance(cake.id, warehouse.id) == 2
        refs = {m.reference_number for m in db.session.query(StockMovement).filter_by(movement_type="out")}
        assert refs == {tx.transaction_number}

    def test_insufficient_stock_aborts_everything(self, make_product, warehouse, stock_in):
        tea = make_product("Tea")
        cake = make_product("Cake")
        stock_in(tea, warehouse, 10)
        stock_in(cake, warehouse, 1)

        with pytest.raises(InsufficientStockError):
            pos_service.checkout([line(tea, 2, 150), line(cake, 5, 400)], warehouse.id)

        assert db.session.query(Transaction).count() == 0
        assert stock_ledger_service.get_balance(tea.id, warehouse.id) == 10
        assert db.session.query(StockMovement).filter_by(movement_type="out").count() == 0

    def test_tax_from_settings_and_discount(self, make_product, warehouse, stock_in):
        settings_service.set_setting("tax_rate", 16)
        tea = make_product("Tea")
        stock_in(tea, warehouse, 5)

        tx = pos_service.checkout([line(tea, 1, 1000)], warehouse.id, discount_cents=100)

        assert tx.tax_cents == 160
        assert tx.total_cents == 1060

    def test_non_finite_tax_rate_is_refused_and_checkout_keeps_working(self, make_product, warehouse, stock_in):
        settings_service.set_setting("tax_rate", 10)
        with pytest.raises(ValidationError):
            settings_service.set_setting("tax_rate", "nan")
        tea = make_product("Tea")
        stock_in(tea, warehouse, 5)

        tx = pos_service.checkout([line(tea, 1, 1000)], warehouse.id)

        assert tx.tax_cents == 100

    def test_non_string_line_name_is_rejected(self, make_product, warehouse, stock_in):
        tea = make_product("Tea")
        stock_in(tea, warehouse, 5)
        bad = dict(line(tea, 1, 100), name=123)
        with pytest.raises(ValidationError, match="name must be a string"):
            pos_service.checkout([bad], warehouse.id, tax_cents=0)
        assert stock_ledger_service.get_balance(tea.id, warehouse.id) == 5

    def test_discount_larger_than_total_is_rejected(self, make_product, warehouse, stock_in):
        tea = make_product("Tea")
        stock_in(tea, warehouse, 5)
        with pytest.raises(ValidationError):
            pos_service.checkout([line(tea, 1, 100)], warehouse.id, tax_cents=0, discount_cents=500)

    def test_unknown_payment_method(self, make_product, warehouse):
        tea = make_product("Tea")
        with pytest.raises(ValidationError):
            pos_service.checkout([line(tea, 1, 100)], warehouse.id, payment_method="barter")

    def test_extra_items_sell_from_extra_warehouse(self, make_product, warehouse, stock_in):
        tea = make_product("Tea")
        stock_in(tea, warehouse, 5)
        manual = warehouse_service.add_manual_item("Gift wrap", 2, 250)
        manual_line = {k: manual[k] for k in ("product_id", "quantity", "price_cents")}

        pos_service.checkout([line(tea, 1, 100), manual_line], warehouse.id, tax_cents=0)

        extra = warehouse_service.find_extra_warehouse()
        assert stock_ledger_service.get_balance(manual["product_id"], extra.id) == 0
        assert stock_ledger_service.get_balance(tea.id, warehouse.id) == 4

    def test_paying_pending_bill_closes_it(self, make_product, warehouse, stock_in):
        tea = make_product("Tea")
        stock_in(tea, warehouse, 5)
        bill = pending_bill_service.create_bill("Eve", [line(tea, 2, 100)], warehouse.id)

        cart = pending_bill_service.load_to_cart(bill.id)
        tx = pos_service.checkout(cart, warehouse.id, tax_cents=0, pending_bill_id=bill.id)

        assert tx.pending_bill_id == bill.id
        assert db.session.get(PendingBill, bill.id).status == "closed"
        assert pending_bill_service.list_open_bills() == []


class TestReceipt:

    def test_receipt_payload(self, make_product, warehouse, stock_in):
        tea = make_product("Tea")
        stock_in(tea, warehouse, 5)
        tx = pos_service.checkout([line(tea, 1, 1250)], warehouse.id, tax_cents=0)

        payload = pos_service.build_receipt_payload(tx)
        assert payload["sale_id"] == tx.transaction_number
        assert payload["amount"] == 12.5
        assert payload["status"] == "APPROVED"
        assert payload["date"].endswith("Z")

    def test_qr_is_png_data_url(self):
        url = pos_service.render_receipt_qr({"sale_id": "TXN-1", "amount": 1.0, "date": "x", "status": "APPROVED"})
        prefix = "data:image/png;base64,"
        assert url.startswith(prefix)
        assert base64.b64decode(url[len(prefix):])[:8] == b"\x89PNG\r\n\x1a\n"

    def test_receipt_honors_settings(self, make_product, warehouse, stock_in):
        tea = make_product("Tea")
        stock_in(tea, warehouse, 5)
        tx = pos_service.checkout([line(tea, 1, 100)], warehouse.id, tax_cents=0)

        settings_service.update_settings({"receipt_show_qr": False, "receipt_footer": "Come again"})
        receipt = pos_service.build_receipt(tx.id)

        assert receipt["qr_code"] is None
        assert receipt["footer"] == "Come again"
        assert receipt["transaction"]["transaction_number"] == tx.transaction_number
        assert json.loads(json.dumps(receipt["qr_payload"]))["status"] == "APPROVED"
