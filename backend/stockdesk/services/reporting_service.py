# Overview: Read-only sales and activity reports built from aggregate queries.

"""
Reporting

- Ranges are half-open [start, end) in UTC. Custom ranges take calendar
  dates and include the whole end day.
- Only completed transactions count towards sales figures.
- Every figure is computed in SQL; no report loads whole tables.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Loan, Product, StockMovement, Transaction, TransactionItem, User
from ..models.inventory import MOVEMENT_IN
from ..models.loans import OPEN_LOAN_STATUSES
from ..time_utils import parse_iso_date, to_iso_date, to_utc_z, today as _today
from ..validation import ValidationError
from .notification_service import low_stock_products


SALE_STATUS_COMPLETED = "completed"

PERIODS = ("today", "yesterday", "this_week", "this_month", "last_30_days")


def _day_start(d: date) -> datetime:
    return datetime.combine(d, time.min)


def _parse_day(value, field: str) -> date | None:
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")


def resolve_range(
    period: str | None = None,
    start=None,
    end=None,
    *,
    today: date | None = None,
) -> tuple[datetime | None, datetime | None]:
    """
    Turn a named period or a custom date range into datetime bounds.

    A named period wins over start/end. Weeks start on Monday. Either
    custom bound may be omitted for an open-ended range.
    """
    today = today or _today()
    if period:
        if period == "today":
            first, last = today, today
        elif period == "yesterday":
            first = last = today - timedelta(days=1)
        elif period == "this_week":
            first = today - timedelta(days=today.weekday())
            last = first + timedelta(days=6)
        elif period == "this_month":
            first = today.replace(day=1)
            last = (first + timedelta(days=32)).replace(day=1) - timedelta(days=1)
        elif period == "last_30_days":
            first, last = today - timedelta(days=30), today
        else:
            raise ValidationError(f"period must be one of: {', '.join(PERIODS)}")
        return _day_start(first), _day_start(last + timedelta(days=1))

    first = _parse_day(start, "start")
    last = _parse_day(end, "end")
    if first and last and last < first:
        raise ValidationError("end must be on or after start")
    return (
        _day_start(first) if first else None,
        _day_start(last + timedelta(days=1)) if last else None,
    )


def _completed_sales(query, start_dt: datetime | None, end_dt: datetime | None):
    query = query.filter(Transaction.status == SALE_STATUS_COMPLETED)
    if start_dt:
        query = query.filter(Transaction.created_at >= start_dt)
    if end_dt:
        query = query.filter(Transaction.created_at < end_dt)
    return query


def _average_cents(total: int, count: int) -> int:
    if not count:
        return 0
    return int((Decimal(total) / Decimal(count)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _range_dict(start_dt: datetime | None, end_dt: datetime | None) -> dict:
    return {"start": to_utc_z(start_dt), "end": to_utc_z(end_dt)}


def sales_summary(period: str | None = None, start=None, end=None, *, today: date | None = None) -> dict:
    """
    Headline sales numbers for a range.

    today_revenue_cents always covers the current day, whatever range
    was asked for.
    """
    today = today or _today()
    start_dt, end_dt = resolve_range(period, start, end, today=today)

    count, revenue, tax, discount = _completed_sales(
        db.session.query(
            func.count(Transaction.id),
            func.coalesce(func.sum(Transaction.total_cents), 0),
            func.coalesce(func.sum(Transaction.tax_cents), 0),
            func.coalesce(func.sum(Transaction.discount_cents), 0),
        ),
        start_dt, end_dt,
    ).one()

    items_sold = _completed_sales(
        db.session.query(func.coalesce(func.sum(TransactionItem.quantity), 0))
        .join(Transaction, TransactionItem.transaction_id == Transaction.id),
        start_dt, end_dt,
    ).scalar()

    by_method = _completed_sales(
        db.session.query(
            Transaction.payment_method,
            func.count(Transaction.id),
            func.coalesce(func.sum(Transaction.total_cents), 0),
        ),
        start_dt, end_dt,
    ).group_by(Transaction.payment_method).order_by(Transaction.payment_method).all()

    today_start, today_end = resolve_range("today", today=today)
    today_revenue = _completed_sales(
        db.session.query(func.coalesce(func.sum(Transaction.total_cents), 0)),
        today_start, today_end,
    ).scalar()

    count, revenue = int(count or 0), int(revenue or 0)
    return {
        **_range_dict(start_dt, end_dt),
        "sales_count": count,
        "revenue_cents": revenue,
        "average_sale_cents": _average_cents(revenue, count),
        "tax_cents": int(tax or 0),
        "discount_cents": int(discount or 0),
        "items_sold": int(items_sold or 0),
        "today_revenue_cents": int(today_revenue or 0),
        "by_payment_method": [
            {"payment_method": method, "sales_count": int(n), "revenue_cents": int(total)}
            for method, n, total in by_method
        ],
    }


def daily_sales(period: str | None = None, start=None, end=None, *, today: date | None = None) -> dict:
    start_dt, end_dt = resolve_range(period, start, end, today=today)
    day = func.date(Transaction.created_at)
    rows = _completed_sales(
        db.session.query(
            day.label("day"),
            func.count(Transaction.id).label("sales_count"),
            func.coalesce(func.sum(Transaction.total_cents), 0).label("revenue_cents"),
        ),
        start_dt, end_dt,
    ).group_by(day).order_by(day).all()

    return {
        **_range_dict(start_dt, end_dt),
        "rows": [
            {
                "day": row.day if isinstance(row.day, str) else to_iso_date(row.day),
                "sales_count": int(row.sales_count or 0),
                "revenue_cents": int(row.revenue_cents or 0),
            }
            for row in rows
        ],
    }


def top_products(
    period: str | None = None,
    start=None,
    end=None,
    *,
    limit: int = 10,
    today: date | None = None,
) -> dict:
    """Best sellers by revenue, ties broken by units sold."""
    start_dt, end_dt = resolve_range(period, start, end, today=today)
    limit = min(max(int(limit or 10), 1), 100)

    revenue = func.coalesce(func.sum(TransactionItem.subtotal_cents), 0)
    units = func.coalesce(func.sum(TransactionItem.quantity), 0)
    rows = _completed_sales(
        db.session.query(
            TransactionItem.product_id,
            func.max(TransactionItem.product_name),
            units.label("units_sold"),
            revenue.label("revenue_cents"),
        ).join(Transaction, TransactionItem.transaction_id == Transaction.id),
        start_dt, end_dt,
    ).group_by(TransactionItem.product_id).order_by(
        revenue.desc(), units.desc(), TransactionItem.product_id.asc()
    ).limit(limit).all()

    return {
        **_range_dict(start_dt, end_dt),
        "rows": [
            {
                "product_id": product_id,
                "name": name,
                "units_sold": int(units_sold or 0),
                "revenue_cents": int(revenue_cents or 0),
            }
            for product_id, name, units_sold, revenue_cents in rows
        ],
    }


def dashboard_overview() -> dict:
    sales_count, revenue = _completed_sales(
        db.session.query(func.count(Transaction.id), func.coalesce(func.sum(Transaction.total_cents), 0)),
        None, None,
    ).one()

    def _count(column, *criteria) -> int:
        return int(db.session.query(func.count(column)).filter(*criteria).scalar() or 0)

    return {
        "sales_count": int(sales_count or 0),
        "revenue_cents": int(revenue or 0),
        "active_products": _count(Product.id, Product.is_active.is_(True)),
        "active_users": _count(User.id, User.is_active.is_(True)),
        "customers": _count(Customer.id),
        "active_loans": _count(Loan.id, Loan.status.in_(OPEN_LOAN_STATUSES)),
        "low_stock_count": len(low_stock_products()),
    }


def recent_activity(limit: int = 10) -> list[dict]:
    """Latest sales and stock movements, newest first."""
    limit = min(max(int(limit or 10), 1), 100)

    sales = (
        db.session.query(Transaction)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(limit)
        .all()
    )
    movements = (
        db.session.query(StockMovement, Product.name)
        .join(Product, StockMovement.product_id == Product.id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )

    entries = []
    for tx in sales:
        customer = tx.customer.name if tx.customer else "walk-in customer"
        entries.append({
            "type": "sale",
            "id": tx.id,
            "reference": tx.transaction_number,
            "description": f"Sale {tx.transaction_number} to {customer}",
            "amount_cents": tx.total_cents,
            "timestamp": tx.created_at,
        })
    for movement, product_name in movements:
        stock_in = movement.movement_type == MOVEMENT_IN
        entries.append({
            "type": "stock_in" if stock_in else "stock_out",
            "id": movement.id,
            "reference": movement.reference_number,
            "description": f"{'Stock in' if stock_in else 'Stock out'}: {movement.quantity} x {product_name}",
            "quantity": movement.quantity,
            "timestamp": movement.created_at,
        })

    entries.sort(key=lambda e: e["timestamp"], reverse=True)
    for entry in entries:
        entry["timestamp"] = to_utc_z(entry["timestamp"])
    return entries[:limit]
