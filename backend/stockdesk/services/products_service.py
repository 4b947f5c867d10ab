# backend/stockdesk/services/products_service.py
"""
Product catalog.

- SKU and barcode are optional but unique when present (ConflictError).
- Stock is never stored on the product; listings attach totals from
  the balance table with one GROUP BY.
- Hard delete is refused while any movement, bill line or sale line
  references the product. Deactivate instead.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Category, PendingBillItem, Product, StockMovement, TransactionItem
from ..validation import ConflictError, NotFoundError
from .concurrency import lock_for_update, run_with_retry
from . import stock_ledger_service, warehouse_service


PRODUCT_MUTABLE_FIELDS = {
    "name", "sku", "barcode", "description",
    "purchase_price_cents", "selling_price_cents", "min_stock_level",
    "expiry_date", "category_id", "is_active",
}

SEARCH_FIELDS = (Product.name, Product.sku, Product.barcode, Product.description)

_FIELD_LABELS = {"sku": "SKU", "barcode": "Barcode"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _check_unique(patch: dict, *, exclude_id: int | None = None) -> None:
    for field in ("sku", "barcode"):
        value = patch.get(field)
        if not value:
            continue
        q = db.session.query(Product.id).filter(getattr(Product, field) == value)
        if exclude_id is not None:
            q = q.filter(Product.id != exclude_id)
        if q.first():
            raise ConflictError(f"{_FIELD_LABELS[field]} already exists")


def _check_category(patch: dict) -> None:
    category_id = patch.get("category_id")
    if category_id is not None and db.session.get(Category, category_id) is None:
        raise NotFoundError("Category not found")


def product_to_dict(p: Product, total: int | None = None) -> dict:
    data = p.to_dict()
    data["total_stock"] = stock_ledger_service.total_stock(p.id) if total is None else total
    return data


def list_products(
    search: str | None = None,
    category_id: int | None = None,
    include_inactive: bool = True,
    page: int | None = None,
    per_page: int | None = None,
    max_per_page: int = 500,
) -> dict:
    """
    Product listing with optional pagination.

    Returns a dict with 'items' and 'count', plus 'pagination' when a
    page is requested.
    """
    base_query = db.session.query(Product)
    term = (search or "").strip().lower()
    if term:
        pattern = f"%{term}%"
        base_query = base_query.filter(
            db.or_(*[db.func.lower(db.func.coalesce(col, "")).like(pattern) for col in SEARCH_FIELDS])
        )
    if category_id is not None:
        base_query = base_query.filter(Product.category_id == category_id)
    if not include_inactive:
        base_query = base_query.filter(Product.is_active.is_(True))
    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    pagination = None
    if page is None:
        products = base_query.all()
    else:
        per_page = max(min(per_page or 20, max_per_page), 1)
        page = max(page, 1)
        total = base_query.count()
        total_pages = (total + per_page - 1) // per_page if total > 0 else 1
        products = base_query.offset((page - 1) * per_page).limit(per_page).all()
        pagination = {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        }

    totals = stock_ledger_service.total_stock_by_product([p.id for p in products])
    result = {
        "items": [product_to_dict(p, totals.get(p.id, 0)) for p in products],
        "count": len(products),
    }
    if pagination is not None:
        result["pagination"] = pagination
    return result


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if p is None:
        raise NotFoundError("Product not found")
    return p


def create_product(*, patch: dict) -> Product:
    """
    Create product from a validated patch dict.

    Raises:
        ConflictError: SKU or barcode already in use
        NotFoundError: unknown category
    """
    def _op():
        _check_unique(patch)
        _check_category(patch)
        p = Product()
        apply_product_patch(p, patch)
        db.session.add(p)
        db.session.commit()
        return p

    return run_with_retry(_op)


def update_product(*, product_id: int, patch: dict) -> Product:
    def _op():
        p = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not p:
            raise NotFoundError("Product not found")
        _check_unique(patch, exclude_id=product_id)
        _check_category(patch)
        apply_product_patch(p, patch)
        db.session.commit()
        return p

    return run_with_retry(_op)


def _product_references(product_id: int) -> str | None:
    if db.session.query(StockMovement.id).filter_by(product_id=product_id).first():
        return "stock movements"
    if db.session.query(TransactionItem.id).filter_by(product_id=product_id).first():
        return "sales"
    if db.session.query(PendingBillItem.id).filter_by(product_id=product_id).first():
        return "pending bills"
    return None


def delete_product(*, product_id: int) -> None:
    """Hard delete; refused with ConflictError while the product is referenced."""
    def _op():
        p = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not p:
            raise NotFoundError("Product not found")
        ref = _product_references(product_id)
        if ref:
            raise ConflictError(f"Product has {ref}; deactivate it instead")
        for balance in list(p.balances):
            db.session.delete(balance)
        db.session.delete(p)
        db.session.commit()

    run_with_retry(_op)


def find_by_barcode(code: str) -> Product:
    """Active product by barcode, falling back to SKU."""
    code = (code or "").strip()
    if not code:
        raise NotFoundError("Product not found")
    p = db.session.query(Product).filter(Product.barcode == code, Product.is_active.is_(True)).first()
    if p is None:
        p = db.session.query(Product).filter(Product.sku == code, Product.is_active.is_(True)).first()
    if p is None:
        raise NotFoundError(f"No product with barcode {code}")
    return p


def product_stock(product_id: int) -> dict:
    """Per-warehouse balances, total and Extra classification for one product."""
    get_product(product_id)
    balances = stock_ledger_service.list_balances(product_id)
    return {
        "product_id": product_id,
        "total_stock": sum(b.quantity for b in balances),
        "classification": warehouse_service.classify_product(product_id),
        "balances": [b.to_dict() for b in balances],
    }
