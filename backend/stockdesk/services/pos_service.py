# Overview: POS checkout and receipt rendering.

"""
Checkout writes the sale and its stock effect as one unit:
Transaction + TransactionItems + one "out" movement per line, plus
closing the pending bill the cart came from. Any insufficient stock
aborts the whole sale.

Line warehouse: a line may name its own warehouse_id (manual POS items
carry the Extra warehouse). Otherwise Extra-only products are taken from
the Extra warehouse and everything else from the checkout warehouse.
"""

from __future__ import annotations

import base64
import io
import json
import logging
import secrets
from decimal import Decimal, ROUND_HALF_UP

import qrcode

from ..extensions import db
from ..models import Customer, PendingBill, Transaction, TransactionItem, Warehouse
from ..models.inventory import MOVEMENT_OUT
from ..validation import NotFoundError, ValidationError
from stockdesk.time_utils import to_utc_z, utcnow
from . import settings_service, warehouse_service
from .cart import cart_total, normalize_cart
from .concurrency import lock_for_update, run_with_retry
from .pending_bill_service import _close_inner
from .stock_ledger_service import _record_movement_inner


logger = logging.getLogger(__name__)

PAYMENT_METHODS = ("cash", "card", "mobile", "bank_transfer", "credit")

RECEIPT_STATUS_APPROVED = "APPROVED"


def _transaction_number() -> str:
    return f"TXN-{utcnow():%Y%m%d%H%M%S}-{secrets.token_hex(3).upper()}"


def compute_tax_cents(subtotal_cents: int, rate_percent) -> int:
    """Tax at rate_percent of the subtotal, rounded half-up to the cent."""
    tax = Decimal(subtotal_cents) * Decimal(str(rate_percent or 0)) / Decimal(100)
    return int(tax.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _line_warehouse_id(line: dict, default_warehouse_id: int, extra_id: int | None) -> int:
    if line.get("warehouse_id") is not None:
        return line["warehouse_id"]
    if extra_id is not None and warehouse_service.classify_product(line["product_id"]) == warehouse_service.CLASS_EXTRA:
        return extra_id
    return default_warehouse_id


def checkout(
    cart,
    warehouse_id: int,
    payment_method: str = "cash",
    customer_id: int | None = None,
    tax_cents: int | None = None,
    discount_cents: int = 0,
    pending_bill_id: int | None = None,
    actor_user_id: int | None = None,
) -> Transaction:
    """
    Complete a sale.

    tax_cents=None applies the configured tax_rate to the subtotal.
    Raises InsufficientStockError (nothing written) when any line
    cannot be covered.
    """
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    for label, value in (("discount_cents", discount_cents), ("tax_cents", tax_cents)):
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f"{label} must be a non-negative integer")

    def _op():
        lines = normalize_cart(cart)

        warehouse = db.session.get(Warehouse, warehouse_id)
        if warehouse is None:
            raise NotFoundError("Warehouse not found")
        if customer_id is not None and db.session.get(Customer, customer_id) is None:
            raise NotFoundError("Customer not found")

        bill = None
        if pending_bill_id is not None:
            bill = lock_for_update(db.session.query(PendingBill).filter_by(id=pending_bill_id)).first()
            if bill is None:
                raise NotFoundError("Pending bill not found")

        subtotal = cart_total(lines)
        tax = tax_cents if tax_cents is not None else compute_tax_cents(
            subtotal, settings_service.get_setting("tax_rate")
        )
        total = subtotal + tax - discount_cents
        if total < 0:
            raise ValidationError("Discount cannot exceed the sale total")

        tx = Transaction(
            transaction_number=_transaction_number(),
            customer_id=customer_id if customer_id is not None else (bill.customer_id if bill else None),
            warehouse_id=warehouse.id,
            pending_bill_id=bill.id if bill else None,
            subtotal_cents=subtotal,
            tax_cents=tax,
            discount_cents=discount_cents,
            total_cents=total,
            payment_method=payment_method,
            status="completed",
            created_by_user_id=actor_user_id,
            created_at=utcnow(),
        )
        db.session.add(tx)
        db.session.flush()

        extra = warehouse_service.find_extra_warehouse()
        extra_id = extra.id if extra is not None else None
        for line in lines:
            db.session.add(TransactionItem(
                transaction_id=tx.id,
                product_id=line["product_id"],
                product_name=line["name"],
                quantity=line["quantity"],
                unit_price_cents=line["price_cents"],
                subtotal_cents=line["subtotal_cents"],
            ))
            _record_movement_inner(
                product_id=line["product_id"],
                warehouse_id=_line_warehouse_id(line, warehouse.id, extra_id),
                direction=MOVEMENT_OUT,
                quantity=line["quantity"],
                reference_number=tx.transaction_number,
                notes=f"Sale {tx.transaction_number}",
                actor_user_id=actor_user_id,
            )

        if bill is not None:
            _close_inner(bill)

        db.session.commit()
        logger.info("Checkout %s: %d line(s), total %d cents", tx.transaction_number, len(lines), total)
        return tx

    return run_with_retry(_op)


def get_transaction(transaction_id: int) -> Transaction:
    tx = db.session.get(Transaction, transaction_id)
    if tx is None:
        raise NotFoundError("Transaction not found")
    return tx


def build_receipt_payload(transaction: Transaction) -> dict:
    """QR payload: a cosmetic verification code, not a signature."""
    return {
        "sale_id": transaction.transaction_number,
        "amount": transaction.total_cents / 100,
        "date": to_utc_z(transaction.created_at),
        "status": RECEIPT_STATUS_APPROVED,
    }


def render_receipt_qr(payload: dict) -> str:
    """Render the payload as JSON inside a PNG QR code, returned as a data URL."""
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(json.dumps(payload, separators=(",", ":")))
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return f"data:image/png;base64,{base64.b64encode(buffer.getvalue()).decode()}"


def build_receipt(transaction_id: int) -> dict:
    """Everything a printable receipt needs, honoring the receipt settings."""
    tx = get_transaction(transaction_id)
    settings = settings_service.get_all_settings()
    payload = build_receipt_payload(tx)

    receipt = {
        "header": settings["receipt_header_text"],
        "business_name": settings["business_name"],
        "currency": settings["currency"],
        "currency_symbol": settings["currency_symbol"],
        "tax_label": settings["receipt_tax_label"],
        "footer": settings["receipt_footer"],
        "paper_size": settings["receipt_paper_size"],
        "transaction": tx.to_dict(),
        "qr_payload": payload,
        "qr_code": None,
    }
    if not settings["receipt_show_customer_info"]:
        receipt["transaction"]["customer_name"] = None
    if settings["receipt_show_qr"]:
        receipt["qr_code"] = render_receipt_qr(payload)
    return receipt
