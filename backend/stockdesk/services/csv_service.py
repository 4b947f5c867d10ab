# Overview: Product CSV export, import (upsert by SKU) and the import template.

from __future__ import annotations

import csv
import io
import logging
from decimal import Decimal, InvalidOperation

from ..extensions import db
from ..models import Category, Product
from ..validation import MAX_PRICE_CENTS, ValidationError, cents_to_str, parse_money_to_cents
from stockdesk.time_utils import parse_iso_date, to_iso_date
from .concurrency import run_with_retry


logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "name", "sku", "barcode", "description", "purchase_price",
    "selling_price", "min_stock_level", "category", "expiry_date", "is_active",
]
REQUIRED_HEADERS = ["name"]

SAMPLE_ROWS = [
    ["Sample Product 1", "SKU-SAMPLE-001", "BAR123456789", "Description of product 1",
     "10.00", "15.00", "10", "Electronics", "2025-12-31", "true"],
    ["Sample Product 2", "SKU-SAMPLE-002", "BAR987654321", "Description of product 2",
     "5.50", "9.99", "20", "Food & Beverages", "2025-06-15", "true"],
    ["Sample Product 3", "SKU-SAMPLE-003", "", "Product without barcode/expiry",
     "25.00", "39.99", "5", "", "", "true"],
]


def _write(rows) -> str:
    out = io.StringIO()
    writer = csv.writer(out, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    writer.writerows(rows)
    return out.getvalue()


def export_products_csv() -> str:
    products = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()
    return _write(
        [
            p.name,
            p.sku or "",
            p.barcode or "",
            p.description or "",
            cents_to_str(p.purchase_price_cents),
            cents_to_str(p.selling_price_cents),
            p.min_stock_level,
            p.category.name if p.category else "",
            to_iso_date(p.expiry_date) or "",
            "true" if p.is_active else "false",
        ]
        for p in products
    )


def sample_csv() -> str:
    return _write(SAMPLE_ROWS)


def _parse_price(raw: str, field: str) -> int:
    if not raw:
        return 0
    cents = parse_money_to_cents(raw, field=field)
    if cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} is too large")
    return cents


def _parse_min_stock(raw: str) -> int:
    if not raw:
        return 0
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise ValidationError("min_stock_level must be a whole number")
    if value != value.to_integral_value() or value < 0:
        raise ValidationError("min_stock_level must be a whole number >= 0")
    return int(value)


def _parse_row(get, categories: dict[str, int]) -> dict:
    name = get("name")
    if not name:
        raise ValidationError("Name is required")

    category_name = get("category")
    category_id = None
    if category_name:
        category_id = categories.get(category_name.lower())
        if category_id is None:
            raise ValidationError(f'Category "{category_name}" not found')

    expiry = None
    raw_expiry = get("expiry_date")
    if raw_expiry:
        try:
            expiry = parse_iso_date(raw_expiry)
        except ValueError:
            raise ValidationError("Invalid expiry date format (use YYYY-MM-DD)")

    return {
        "name": name,
        "sku": get("sku") or None,
        "barcode": get("barcode") or None,
        "description": get("description") or None,
        "purchase_price_cents": _parse_price(get("purchase_price"), "purchase_price"),
        "selling_price_cents": _parse_price(get("selling_price"), "selling_price"),
        "min_stock_level": _parse_min_stock(get("min_stock_level")),
        "category_id": category_id,
        "expiry_date": expiry,
        "is_active": get("is_active").lower() != "false",
    }


def import_products_csv(text: str) -> dict:
    """
    Import products from CSV text.

    The header row is required and must contain "name"; header names are
    matched case-insensitively. Rows with errors are skipped and
    reported as "Row N: ..."; the valid rows are upserted by SKU (rows
    without a SKU are inserted) in one transaction.

    Returns {"imported", "created", "updated", "errors"}.
    """
    if text is None:
        raise ValidationError("CSV content is required")
    rows = [row for row in csv.reader(io.StringIO(text.lstrip("\ufeff"))) if any(cell.strip() for cell in row)]
    if len(rows) < 2:
        raise ValidationError("CSV file must have headers and at least one data row")

    headers = [h.strip().lower() for h in rows[0]]
    missing = [h for h in REQUIRED_HEADERS if h not in headers]
    if missing:
        raise ValidationError(f"Missing required headers: {', '.join(missing)}")

    categories = {name.lower(): cid for cid, name in db.session.query(Category.id, Category.name).all()}

    errors: list[str] = []
    parsed: list[tuple[int, dict]] = []
    for offset, row in enumerate(rows[1:]):
        row_num = offset + 2

        def get(header: str, _row=row) -> str:
            try:
                idx = headers.index(header)
            except ValueError:
                return ""
            return _row[idx].strip() if idx < len(_row) else ""

        try:
            parsed.append((row_num, _parse_row(get, categories)))
        except ValidationError as e:
            errors.append(f"Row {row_num}: {e}")

    def _op():
        created = updated = 0
        conflicts = []
        for row_num, data in parsed:
            product = None
            if data["sku"]:
                product = db.session.query(Product).filter_by(sku=data["sku"]).first()
            if data["barcode"]:
                clash = db.session.query(Product).filter(Product.barcode == data["barcode"]).first()
                if clash is not None and clash is not product:
                    conflicts.append(f"Row {row_num}: Barcode {data['barcode']} already belongs to another product")
                    continue
            if product is None:
                product = Product()
                db.session.add(product)
                created += 1
            else:
                updated += 1
            for key, value in data.items():
                setattr(product, key, value)
            db.session.flush()
        db.session.commit()
        return created, updated, conflicts

    created, updated, conflicts = run_with_retry(_op) if parsed else (0, 0, [])
    errors.extend(conflicts)
    logger.info("CSV import: %d created, %d updated, %d error(s)", created, updated, len(errors))
    return {"imported": created + updated, "created": created, "updated": updated, "errors": errors}
