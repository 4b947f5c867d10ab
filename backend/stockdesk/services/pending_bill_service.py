# Overview: Pending bills (parked carts): create, merge, resume, close, delete.

"""
Pending bill lifecycle

    open -> closed   (soft, terminal; also set when a checkout pays the bill)
    open -> deleted  (hard, cascades items)

Rules:
- Stock is not touched while a bill is pending.
- Merging a cart into a bill bumps the quantity of lines whose product
  is already on the bill and recomputes their subtotal with the BILL's
  unit price; new products are appended at the cart price.
- Every edit touches updated_at; open bills list newest first.
- Closed bills are read-only.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Customer, PendingBill, PendingBillItem, Warehouse
from ..models.pos import BILL_STATUS_OPEN, BILL_STATUS_CLOSED
from ..validation import ConflictError, NotFoundError, ValidationError
from stockdesk.time_utils import utcnow
from .cart import normalize_cart
from .concurrency import lock_for_update, run_with_retry


logger = logging.getLogger(__name__)


class PendingBillError(ConflictError):
    """Raised when a bill cannot be changed in its current state."""


def _locked_bill(bill_id: int) -> PendingBill:
    bill = lock_for_update(db.session.query(PendingBill).filter_by(id=bill_id)).first()
    if not bill:
        raise NotFoundError("Pending bill not found")
    return bill


def _require_open(bill: PendingBill) -> None:
    if bill.status != BILL_STATUS_OPEN:
        raise PendingBillError(f"Pending bill {bill.id} is {bill.status}")


def _item_from_line(line: dict) -> PendingBillItem:
    return PendingBillItem(
        product_id=line["product_id"],
        product_name=line["name"],
        quantity=line["quantity"],
        unit_price_cents=line["price_cents"],
        subtotal_cents=line["quantity"] * line["price_cents"],
    )


def create_bill(
    customer_name: str,
    cart,
    warehouse_id: int,
    customer_phone: str | None = None,
    notes: str | None = None,
    customer_id: int | None = None,
    actor_user_id: int | None = None,
) -> PendingBill:
    """Park a non-empty cart under a customer name."""
    customer_name = (customer_name or "").strip()
    if not customer_name:
        raise ValidationError("Customer name is required")

    def _op():
        lines = normalize_cart(cart)
        if db.session.get(Warehouse, warehouse_id) is None:
            raise NotFoundError("Warehouse not found")
        if customer_id is not None and db.session.get(Customer, customer_id) is None:
            raise NotFoundError("Customer not found")

        now = utcnow()
        bill = PendingBill(
            customer_name=customer_name,
            customer_phone=(customer_phone or "").strip() or None,
            customer_id=customer_id,
            warehouse_id=warehouse_id,
            status=BILL_STATUS_OPEN,
            notes=(notes or "").strip() or None,
            created_by_user_id=actor_user_id,
            created_at=now,
            updated_at=now,
        )
        bill.items = [_item_from_line(line) for line in lines]
        db.session.add(bill)
        db.session.commit()
        logger.info("Parked bill %s for %r with %d line(s)", bill.id, customer_name, len(lines))
        return bill

    return run_with_retry(_op)


def merge_cart_into(bill_id: int, cart) -> PendingBill:
    """Add cart lines to an open bill in one transaction."""
    def _op():
        bill = _locked_bill(bill_id)
        _require_open(bill)
        lines = normalize_cart(cart)

        by_product = {item.product_id: item for item in bill.items}
        for line in lines:
            existing = by_product.get(line["product_id"])
            if existing is not None:
                existing.quantity += line["quantity"]
                existing.subtotal_cents = existing.quantity * existing.unit_price_cents
            else:
                item = _item_from_line(line)
                bill.items.append(item)
                by_product[item.product_id] = item

        bill.updated_at = utcnow()
        db.session.commit()
        return bill

    return run_with_retry(_op)


def load_to_cart(bill_id: int) -> list[dict]:
    """Materialize an open bill's items as cart lines. Nothing is locked."""
    bill = get_bill(bill_id)
    _require_open(bill)
    return [
        {
            "product_id": item.product_id,
            "name": item.product_name,
            "quantity": item.quantity,
            "price_cents": item.unit_price_cents,
            "subtotal_cents": item.subtotal_cents,
        }
        for item in bill.items
    ]


def remove_item(bill_id: int, item_id: int) -> PendingBill:
    def _op():
        bill = _locked_bill(bill_id)
        _require_open(bill)
        item = next((i for i in bill.items if i.id == item_id), None)
        if item is None:
            raise NotFoundError("Bill item not found")
        bill.items.remove(item)
        bill.updated_at = utcnow()
        db.session.commit()
        return bill

    return run_with_retry(_op)


def _close_inner(bill: PendingBill) -> None:
    _require_open(bill)
    bill.status = BILL_STATUS_CLOSED
    bill.updated_at = utcnow()


def close_bill(bill_id: int) -> PendingBill:
    def _op():
        bill = _locked_bill(bill_id)
        _close_inner(bill)
        db.session.commit()
        return bill

    return run_with_retry(_op)


def delete_bill(bill_id: int) -> None:
    """Hard delete; items go with it."""
    def _op():
        bill = _locked_bill(bill_id)
        db.session.delete(bill)
        db.session.commit()
        logger.info("Deleted pending bill %s", bill_id)

    run_with_retry(_op)


def list_open_bills(search: str | None = None) -> list[PendingBill]:
    q = db.session.query(PendingBill).filter(PendingBill.status == BILL_STATUS_OPEN)
    term = (search or "").strip()
    if term:
        pattern = f"%{term.lower()}%"
        q = q.filter(
            db.or_(
                db.func.lower(PendingBill.customer_name).like(pattern),
                db.func.lower(db.func.coalesce(PendingBill.customer_phone, "")).like(pattern),
            )
        )
    return q.order_by(PendingBill.updated_at.desc(), PendingBill.id.desc()).all()


def get_bill(bill_id: int) -> PendingBill:
    bill = db.session.get(PendingBill, bill_id)
    if bill is None:
        raise NotFoundError("Pending bill not found")
    return bill


def bill_total(bill_id: int) -> int:
    return get_bill(bill_id).total_cents
