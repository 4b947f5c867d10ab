# Overview: Service-layer operations for the stock ledger; movements and per-warehouse balances.

"""
Stock ledger invariants (authoritative)

Model:
- StockMovement rows are append-only facts: direction in/out, quantity > 0.
- InventoryBalance holds the running signed sum of movements for each
  (product, warehouse) pair. It is written in the same DB transaction as
  the movement that changes it, never on its own.

Business invariants:
- A balance never goes negative. An "out" larger than the balance is
  rejected with InsufficientStockError and nothing is written.
- total_stock(product) is the sum of that product's balances.
- Deleting a movement reverses its balance effect in the same transaction.

Recovery:
- reconcile_balances() rebuilds balances from the movement log and
  reports the pairs it had to correct.
"""

from __future__ import annotations

import logging

from sqlalchemy import case, func

from ..extensions import db
from ..models import InventoryBalance, Product, StockMovement, Warehouse
from ..models.inventory import MOVEMENT_IN, MOVEMENT_OUT, MOVEMENT_DIRECTIONS
from ..validation import ConflictError, NotFoundError, ValidationError
from stockdesk.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry


logger = logging.getLogger(__name__)

INSUFFICIENT_STOCK_MESSAGE = "Insufficient stock in selected warehouse"


class InsufficientStockError(ConflictError):
    """An outbound movement would drive a balance below zero."""

    def __init__(self, message: str = INSUFFICIENT_STOCK_MESSAGE, *, product_id=None, warehouse_id=None,
                 available: int | None = None, requested: int | None = None):
        super().__init__(message)
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        self.available = available
        self.requested = requested


def _signed_sum():
    return func.coalesce(
        func.sum(
            case(
                (StockMovement.movement_type == MOVEMENT_IN, StockMovement.quantity),
                else_=-StockMovement.quantity,
            )
        ),
        0,
    )


def _ensure_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _ensure_warehouse(warehouse_id: int, *, require_active: bool = True) -> Warehouse:
    warehouse = db.session.get(Warehouse, warehouse_id)
    if warehouse is None:
        raise NotFoundError("Warehouse not found")
    if require_active and not warehouse.is_active:
        raise ValidationError("Warehouse is inactive")
    return warehouse


def _locked_balance(product_id: int, warehouse_id: int, *, create: bool) -> InventoryBalance | None:
    balance = lock_for_update(
        db.session.query(InventoryBalance).filter_by(product_id=product_id, warehouse_id=warehouse_id)
    ).first()
    if balance is None and create:
        balance = InventoryBalance(product_id=product_id, warehouse_id=warehouse_id, quantity=0)
        db.session.add(balance)
    return balance


def _apply_delta(product_id: int, warehouse_id: int, delta: int) -> InventoryBalance:
    balance = _locked_balance(product_id, warehouse_id, create=delta > 0)
    available = balance.quantity if balance is not None else 0
    if available + delta < 0:
        raise InsufficientStockError(
            product_id=product_id,
            warehouse_id=warehouse_id,
            available=available,
            requested=-delta,
        )
    balance.quantity = available + delta
    return balance


def _reference_for(movement: StockMovement) -> str:
    stamp = (movement.created_at or utcnow()).strftime("%Y%m%d")
    return f"MOV-{stamp}-{movement.id}"


def _record_movement_inner(
    *,
    product_id: int,
    warehouse_id: int,
    direction: str,
    quantity: int,
    reference_number: str | None = None,
    notes: str | None = None,
    actor_user_id: int | None = None,
) -> StockMovement:
    """Core movement logic without retry or commit.

    Called by record_movement() and by multi-row operations (checkout,
    manual POS items, move-to-regular) that must commit as one unit.
    """
    if direction not in MOVEMENT_DIRECTIONS:
        raise ValidationError("movement_type must be 'in' or 'out'")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer")

    _ensure_product(product_id)
    _ensure_warehouse(warehouse_id, require_active=direction == MOVEMENT_IN)

    delta = quantity if direction == MOVEMENT_IN else -quantity
    _apply_delta(product_id, warehouse_id, delta)

    movement = StockMovement(
        product_id=product_id,
        warehouse_id=warehouse_id,
        movement_type=direction,
        quantity=quantity,
        reference_number=(reference_number or "").strip() or None,
        notes=(notes or "").strip() or None,
        created_by_user_id=actor_user_id,
        created_at=utcnow(),
    )
    db.session.add(movement)
    db.session.flush()

    if movement.reference_number is None:
        movement.reference_number = _reference_for(movement)

    return movement


def record_movement(
    product_id: int,
    warehouse_id: int,
    direction: str,
    quantity: int,
    reference_number: str | None = None,
    notes: str | None = None,
    actor_user_id: int | None = None,
) -> StockMovement:
    """
    Append one movement and update the matching balance atomically.

    Raises:
        ValidationError: bad direction/quantity or inactive warehouse
        NotFoundError: unknown product or warehouse
        InsufficientStockError: an "out" larger than the balance
    """
    def _op():
        movement = _record_movement_inner(
            product_id=product_id,
            warehouse_id=warehouse_id,
            direction=direction,
            quantity=quantity,
            reference_number=reference_number,
            notes=notes,
            actor_user_id=actor_user_id,
        )
        db.session.commit()
        logger.info(
            "Recorded %s movement of %d for product %s in warehouse %s (%s)",
            direction, quantity, product_id, warehouse_id, movement.reference_number,
        )
        return movement

    return run_with_retry(_op)


def get_balance(product_id: int, warehouse_id: int) -> int:
    balance = db.session.query(InventoryBalance.quantity).filter_by(
        product_id=product_id, warehouse_id=warehouse_id
    ).scalar()
    return int(balance or 0)


def list_balances(product_id: int) -> list[InventoryBalance]:
    """Balance rows for one product across warehouses, by warehouse name."""
    return (
        db.session.query(InventoryBalance)
        .join(Warehouse, Warehouse.id == InventoryBalance.warehouse_id)
        .filter(InventoryBalance.product_id == product_id)
        .order_by(Warehouse.name)
        .all()
    )


def total_stock(product_id: int) -> int:
    total = db.session.query(func.coalesce(func.sum(InventoryBalance.quantity), 0)).filter(
        InventoryBalance.product_id == product_id
    ).scalar()
    return int(total or 0)


def total_stock_by_product(product_ids=None) -> dict[int, int]:
    """
    {product_id: total quantity} in one GROUP BY query.

    Products without any balance row are absent from the result; callers
    treat a missing key as zero.
    """
    q = db.session.query(
        InventoryBalance.product_id,
        func.coalesce(func.sum(InventoryBalance.quantity), 0),
    )
    if product_ids is not None:
        ids = list(product_ids)
        if not ids:
            return {}
        q = q.filter(InventoryBalance.product_id.in_(ids))
    rows = q.group_by(InventoryBalance.product_id).all()
    return {pid: int(qty) for pid, qty in rows}


def list_movements(
    product_id: int | None = None,
    warehouse_id: int | None = None,
    direction: str | None = None,
    limit: int = 200,
) -> list[StockMovement]:
    q = db.session.query(StockMovement)
    if product_id is not None:
        q = q.filter(StockMovement.product_id == product_id)
    if warehouse_id is not None:
        q = q.filter(StockMovement.warehouse_id == warehouse_id)
    if direction is not None:
        if direction not in MOVEMENT_DIRECTIONS:
            raise ValidationError("movement_type must be 'in' or 'out'")
        q = q.filter(StockMovement.movement_type == direction)
    return q.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).limit(limit).all()


def delete_movement(movement_id: int) -> None:
    """
    Delete a movement and reverse its balance effect.

    Deleting an "in" whose stock has already gone out would leave a
    negative balance; that is refused with InsufficientStockError.
    """
    def _op():
        movement = lock_for_update(db.session.query(StockMovement).filter_by(id=movement_id)).first()
        if movement is None:
            raise NotFoundError("Movement not found")

        try:
            _apply_delta(movement.product_id, movement.warehouse_id, -movement.signed_quantity)
        except InsufficientStockError as exc:
            raise InsufficientStockError(
                "Cannot delete movement: stock has already been moved out of this warehouse",
                product_id=exc.product_id,
                warehouse_id=exc.warehouse_id,
                available=exc.available,
                requested=exc.requested,
            ) from exc
        db.session.delete(movement)
        db.session.commit()
        logger.info("Deleted movement %s and reversed %+d", movement_id, -movement.signed_quantity)

    run_with_retry(_op)


def reconcile_balances() -> list[dict]:
    """
    Rebuild every balance from the movement log.

    Returns one entry per corrected pair:
    {product_id, warehouse_id, recorded, expected}.
    """
    def _op():
        expected = {
            (pid, wid): int(qty)
            for pid, wid, qty in db.session.query(
                StockMovement.product_id, StockMovement.warehouse_id, _signed_sum()
            ).group_by(StockMovement.product_id, StockMovement.warehouse_id).all()
        }
        balances = {
            (b.product_id, b.warehouse_id): b
            for b in lock_for_update(db.session.query(InventoryBalance)).all()
        }

        drift = []
        for key in sorted(set(expected) | set(balances)):
            want = expected.get(key, 0)
            row = balances.get(key)
            have = row.quantity if row is not None else 0
            if want == have:
                continue
            if want < 0:
                # The ledger itself is inconsistent; clamp and report.
                logger.error("Movement log for product %s warehouse %s sums to %d", key[0], key[1], want)
            drift.append({"product_id": key[0], "warehouse_id": key[1], "recorded": have, "expected": want})
            if row is None:
                row = InventoryBalance(product_id=key[0], warehouse_id=key[1], quantity=0)
                db.session.add(row)
            row.quantity = max(want, 0)

        db.session.commit()
        if drift:
            logger.warning("Reconciled %d drifted balance(s)", len(drift))
        return drift

    return run_with_retry(_op)
