# Overview: Cart line normalization shared by pending bills and checkout.

from __future__ import annotations

from ..extensions import db
from ..models import Product
from ..validation import NotFoundError, ValidationError, MAX_PRICE_CENTS


def _int_field(line: dict, key: str, *, minimum: int) -> int:
    value = line.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer")
    if value < minimum:
        raise ValidationError(f"{key} must be >= {minimum}")
    return value


def normalize_cart(cart) -> list[dict]:
    """
    Validate cart lines and fold duplicate products together.

    A line is {product_id, quantity, price_cents, name?, warehouse_id?}.
    Duplicates keep the first line's price, the same way adding an item
    already in the cart only bumps its quantity. Missing names are
    filled from the product.
    """
    if not isinstance(cart, list) or not cart:
        raise ValidationError("Cart is empty")

    lines: dict[int, dict] = {}
    for raw in cart:
        if not isinstance(raw, dict):
            raise ValidationError("Invalid cart line")
        product_id = _int_field(raw, "product_id", minimum=1)
        quantity = _int_field(raw, "quantity", minimum=1)
        price_cents = _int_field(raw, "price_cents", minimum=0)
        if price_cents > MAX_PRICE_CENTS:
            raise ValidationError("price_cents is too large")

        if product_id in lines:
            line = lines[product_id]
            line["quantity"] += quantity
            line["subtotal_cents"] = line["quantity"] * line["price_cents"]
            continue

        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")

        warehouse_id = raw.get("warehouse_id")
        if warehouse_id is not None and (isinstance(warehouse_id, bool) or not isinstance(warehouse_id, int)):
            raise ValidationError("warehouse_id must be an integer")

        name = raw.get("name")
        if name is not None and not isinstance(name, str):
            raise ValidationError("name must be a string")

        lines[product_id] = {
            "product_id": product_id,
            "name": (name or "").strip() or product.name,
            "quantity": quantity,
            "price_cents": price_cents,
            "subtotal_cents": quantity * price_cents,
            "warehouse_id": warehouse_id,
        }

    return list(lines.values())


def cart_total(lines: list[dict]) -> int:
    return sum(line["subtotal_cents"] for line in lines)
