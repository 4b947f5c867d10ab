# Overview: Warehouse CRUD and the reserved "Extra" warehouse for ad-hoc POS items.

"""
Extra warehouse convention

- The warehouse named Config.EXTRA_WAREHOUSE_NAME is a sentinel holding
  stock for items typed in at the POS that are not in the catalog.
- It is created lazily (find by name, else insert) the first time a
  manual item is added. It cannot be created, renamed or deleted
  through the regular CRUD path.
- A product is "extra" iff it has at least one balance row and every
  one of them points at the Extra warehouse.
- move_to_regular() assigns a category and moves all Extra stock to a
  real warehouse as one DB transaction (out of Extra + in to target).
"""

from __future__ import annotations

import logging

from flask import current_app

from ..extensions import db
from ..models import Category, InventoryBalance, Product, StockMovement, Warehouse
from ..models.inventory import MOVEMENT_IN, MOVEMENT_OUT
from ..validation import ConflictError, NotFoundError, ValidationError, MAX_PRICE_CENTS
from .concurrency import lock_for_update, run_with_retry
from .stock_ledger_service import _record_movement_inner


logger = logging.getLogger(__name__)

CLASS_REGULAR = "regular"
CLASS_EXTRA = "extra"

MANUAL_ITEM_DESCRIPTION = "Manually added via POS"
MANUAL_ITEM_NOTES = "Manual POS item - auto stock"


def extra_warehouse_name() -> str:
    return current_app.config.get("EXTRA_WAREHOUSE_NAME", "Extra")


def _is_reserved(name: str | None) -> bool:
    return (name or "").strip().lower() == extra_warehouse_name().lower()


def find_extra_warehouse() -> Warehouse | None:
    return db.session.query(Warehouse).filter_by(name=extra_warehouse_name()).first()


def _get_or_create_extra_inner() -> Warehouse:
    warehouse = find_extra_warehouse()
    if warehouse is None:
        warehouse = Warehouse(
            name=extra_warehouse_name(),
            location=current_app.config.get("EXTRA_WAREHOUSE_LOCATION", "Manual/Extra Items"),
            is_active=True,
        )
        db.session.add(warehouse)
        db.session.flush()
        logger.info("Created %s warehouse (id=%s)", warehouse.name, warehouse.id)
    return warehouse


def get_or_create_extra_warehouse() -> Warehouse:
    def _op():
        warehouse = _get_or_create_extra_inner()
        db.session.commit()
        return warehouse

    return run_with_retry(_op)


# -- CRUD --

def list_warehouses(*, include_inactive: bool = True) -> list[Warehouse]:
    q = db.session.query(Warehouse)
    if not include_inactive:
        q = q.filter(Warehouse.is_active.is_(True))
    return q.order_by(Warehouse.name.asc()).all()


def get_warehouse(warehouse_id: int) -> Warehouse:
    warehouse = db.session.get(Warehouse, warehouse_id)
    if warehouse is None:
        raise NotFoundError("Warehouse not found")
    return warehouse


def _clean_name(name) -> str:
    name = (name or "").strip() if isinstance(name, str) or name is None else str(name).strip()
    if not name:
        raise ValidationError("Warehouse name is required")
    if len(name) > 120:
        raise ValidationError("name exceeds max length 120")
    return name


def create_warehouse(name: str, location: str | None = None, is_active: bool = True) -> Warehouse:
    def _op():
        clean = _clean_name(name)
        if _is_reserved(clean):
            raise ConflictError(f"'{extra_warehouse_name()}' is a reserved warehouse name")
        if db.session.query(Warehouse).filter(db.func.lower(Warehouse.name) == clean.lower()).first():
            raise ConflictError("Warehouse name already exists")

        warehouse = Warehouse(name=clean, location=(location or "").strip() or None, is_active=bool(is_active))
        db.session.add(warehouse)
        db.session.commit()
        return warehouse

    return run_with_retry(_op)


def update_warehouse(
    warehouse_id: int,
    *,
    name: str | None = None,
    location: str | None = None,
    is_active: bool | None = None,
) -> Warehouse:
    def _op():
        warehouse = lock_for_update(db.session.query(Warehouse).filter_by(id=warehouse_id)).first()
        if not warehouse:
            raise NotFoundError("Warehouse not found")

        reserved = _is_reserved(warehouse.name)
        if name is not None:
            clean = _clean_name(name)
            if reserved and clean != warehouse.name:
                raise ConflictError("The Extra warehouse cannot be renamed")
            if not reserved and _is_reserved(clean):
                raise ConflictError(f"'{extra_warehouse_name()}' is a reserved warehouse name")
            clash = db.session.query(Warehouse).filter(
                db.func.lower(Warehouse.name) == clean.lower(), Warehouse.id != warehouse_id
            ).first()
            if clash:
                raise ConflictError("Warehouse name already exists")
            warehouse.name = clean
        if location is not None:
            warehouse.location = location.strip() or None
        if is_active is not None:
            if reserved and not is_active:
                raise ConflictError("The Extra warehouse cannot be deactivated")
            warehouse.is_active = bool(is_active)

        db.session.commit()
        return warehouse

    return run_with_retry(_op)


def delete_warehouse(warehouse_id: int) -> None:
    """Hard delete; refused for Extra and for warehouses with ledger history."""
    def _op():
        warehouse = lock_for_update(db.session.query(Warehouse).filter_by(id=warehouse_id)).first()
        if not warehouse:
            raise NotFoundError("Warehouse not found")
        if _is_reserved(warehouse.name):
            raise ConflictError("The Extra warehouse cannot be deleted")
        if db.session.query(StockMovement.id).filter_by(warehouse_id=warehouse_id).first():
            raise ConflictError("Warehouse has stock movements; deactivate it instead")

        db.session.query(InventoryBalance).filter_by(warehouse_id=warehouse_id).delete()
        db.session.delete(warehouse)
        db.session.commit()

    run_with_retry(_op)


# -- classification --

def classify_product(product_id: int) -> str:
    """
    "extra" iff the product has balance rows and all of them are in the
    Extra warehouse; "regular" otherwise (including no rows at all).
    """
    names = [
        name for (name,) in db.session.query(Warehouse.name)
        .join(InventoryBalance, InventoryBalance.warehouse_id == Warehouse.id)
        .filter(InventoryBalance.product_id == product_id)
        .all()
    ]
    if names and all(name == extra_warehouse_name() for name in names):
        return CLASS_EXTRA
    return CLASS_REGULAR


def add_manual_item(name: str, quantity: int, price_cents: int, actor_user_id: int | None = None) -> dict:
    """
    Create an ad-hoc product stocked in the Extra warehouse.

    Returns a cart line for the POS: the product and the movement that
    stocks it are committed together.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Item name is required")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    if isinstance(price_cents, bool) or not isinstance(price_cents, int) or price_cents <= 0:
        raise ValidationError("Price must be greater than 0")
    if price_cents > MAX_PRICE_CENTS:
        raise ValidationError("Price is too large")

    def _op():
        warehouse = _get_or_create_extra_inner()
        product = Product(
            name=name,
            selling_price_cents=price_cents,
            purchase_price_cents=0,
            min_stock_level=0,
            is_active=True,
            description=MANUAL_ITEM_DESCRIPTION,
        )
        db.session.add(product)
        db.session.flush()

        _record_movement_inner(
            product_id=product.id,
            warehouse_id=warehouse.id,
            direction=MOVEMENT_IN,
            quantity=quantity,
            notes=MANUAL_ITEM_NOTES,
            actor_user_id=actor_user_id,
        )
        db.session.commit()
        logger.info("Manual POS item %r (product %s) stocked with %d", name, product.id, quantity)

        return {
            "product_id": product.id,
            "name": name,
            "quantity": quantity,
            "price_cents": price_cents,
            "subtotal_cents": quantity * price_cents,
            "warehouse_id": warehouse.id,
        }

    return run_with_retry(_op)


def move_to_regular(
    product_id: int,
    category_id: int | None,
    warehouse_id: int,
    actor_user_id: int | None = None,
) -> dict:
    """
    Promote an Extra product into the catalog.

    Sets the category, then (if Extra stock > 0) writes an out-from-Extra
    and an in-to-target movement for the full quantity. Everything
    commits together or not at all; total stock is unchanged.
    """
    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise NotFoundError("Product not found")

        extra = find_extra_warehouse()
        if extra is None or classify_product(product_id) != CLASS_EXTRA:
            raise ConflictError("Product is not an Extra item")

        target = db.session.get(Warehouse, warehouse_id)
        if target is None:
            raise NotFoundError("Warehouse not found")
        if target.id == extra.id:
            raise ValidationError("Target warehouse must not be the Extra warehouse")
        if not target.is_active:
            raise ValidationError("Warehouse is inactive")

        if category_id is not None:
            if db.session.get(Category, category_id) is None:
                raise NotFoundError("Category not found")
            product.category_id = category_id

        balance = db.session.query(InventoryBalance).filter_by(
            product_id=product_id, warehouse_id=extra.id
        ).first()
        moved = balance.quantity if balance is not None else 0

        if moved > 0:
            reference = f"MOVE-{product.id}-{target.id}"
            _record_movement_inner(
                product_id=product.id,
                warehouse_id=extra.id,
                direction=MOVEMENT_OUT,
                quantity=moved,
                reference_number=reference,
                notes=f"Moved to {target.name}",
                actor_user_id=actor_user_id,
            )
            _record_movement_inner(
                product_id=product.id,
                warehouse_id=target.id,
                direction=MOVEMENT_IN,
                quantity=moved,
                reference_number=reference,
                notes=f"Moved from {extra.name}",
                actor_user_id=actor_user_id,
            )

        db.session.commit()
        logger.info("Moved product %s to regular stock (%d units -> warehouse %s)", product.id, moved, target.id)
        return {
            "product": product.to_dict(),
            "moved_quantity": moved,
            "from_warehouse_id": extra.id,
            "to_warehouse_id": target.id,
        }

    return run_with_retry(_op)
