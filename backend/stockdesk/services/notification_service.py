# Overview: Derived (non-persisted) notifications: expiry, low stock, loans, tickets.

"""
Notifications are recomputed from current data on every refresh; they
are never stored. Each rule yields at most one entry, except "expired"
which yields one alert per product:

    expired-<product_id>   alert    expiry_date < today
    expiring-soon          warning  today <= expiry_date <= today + window
    low-stock              warning  total stock <= threshold
    pending-loans          info     loans in pending/active
    overdue-loans          alert    ...and due_date < today
    open-tickets           info     support tickets in status open

Ids are stable per rule (and product), so NotificationFeed can keep the
read flag of an entry across refreshes. Read state lives in process
memory only.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..models import InventoryBalance, Loan, Product, SupportTicket
from ..models.loans import OPEN_LOAN_STATUSES
from stockdesk.time_utils import today as _today, to_iso_date, to_utc_z, utcnow
from . import settings_service


TYPE_ALERT = "alert"
TYPE_WARNING = "warning"
TYPE_INFO = "info"

EXPIRY_EXPIRED = "expired"
EXPIRY_TODAY = "today"
EXPIRY_SOON = "expiring_soon"
EXPIRY_OK = "ok"


@dataclass(frozen=True)
class ExpiryStatus:
    status: str
    days_remaining: int


def classify_expiry(expiry_date: date | None, today: date, window_days: int = 30) -> ExpiryStatus | None:
    """
    Bucket an expiry date relative to today.

    today itself is not expired: it is "today" with 0 days remaining,
    inside the warning window. None means the product does not expire.
    """
    if expiry_date is None:
        return None
    days = (expiry_date - today).days
    if days < 0:
        return ExpiryStatus(EXPIRY_EXPIRED, days)
    if days == 0:
        return ExpiryStatus(EXPIRY_TODAY, 0)
    if days <= window_days:
        return ExpiryStatus(EXPIRY_SOON, days)
    return ExpiryStatus(EXPIRY_OK, days)


@dataclass
class Notification:
    id: str
    type: str
    title: str
    message: str
    link: str | None = None
    read: bool = False
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "link": self.link,
            "read": self.read,
            "created_at": to_utc_z(self.created_at),
        }


def default_low_stock_threshold() -> int:
    return int(settings_service.get_setting("low_stock_threshold"))


def low_stock_products(default_threshold: int | None = None) -> list[dict]:
    """
    Active products whose total stock is at or below their threshold.

    The threshold is min_stock_level, or the default when that is 0.
    One aggregate query; products without balance rows count as 0.
    """
    if default_threshold is None:
        default_threshold = default_low_stock_threshold()

    totals = (
        db.session.query(
            InventoryBalance.product_id.label("product_id"),
            func.sum(InventoryBalance.quantity).label("total"),
        )
        .group_by(InventoryBalance.product_id)
        .subquery()
    )
    total_expr = func.coalesce(totals.c.total, 0)
    threshold_expr = case((Product.min_stock_level > 0, Product.min_stock_level), else_=default_threshold)

    rows = (
        db.session.query(Product, total_expr, threshold_expr)
        .outerjoin(totals, totals.c.product_id == Product.id)
        .filter(Product.is_active.is_(True))
        .filter(total_expr <= threshold_expr)
        .order_by(total_expr.asc(), Product.name.asc())
        .all()
    )
    return [
        {
            "product_id": product.id,
            "name": product.name,
            "sku": product.sku,
            "total_stock": int(total),
            "threshold": int(threshold),
        }
        for product, total, threshold in rows
    ]


def expiring_products(today: date | None = None, window_days: int | None = None) -> list[dict]:
    """Active products that are expired or inside the warning window."""
    today = today or _today()
    if window_days is None:
        window_days = int(settings_service.get_setting("expiry_alert_days"))
    horizon = today + timedelta(days=window_days)
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.expiry_date.isnot(None), Product.expiry_date <= horizon)
        .order_by(Product.expiry_date.asc(), Product.name.asc())
        .all()
    )
    result = []
    for product in products:
        status = classify_expiry(product.expiry_date, today, window_days)
        result.append({
            "product_id": product.id,
            "name": product.name,
            "expiry_date": to_iso_date(product.expiry_date),
            "status": status.status,
            "days_remaining": status.days_remaining,
        })
    return result


def derive_notifications(today: date | None = None) -> list[Notification]:
    today = today or _today()
    window = int(settings_service.get_setting("expiry_alert_days"))
    notifs: list[Notification] = []

    expiring_count = 0
    for entry in expiring_products(today, window):
        if entry["status"] == EXPIRY_EXPIRED:
            notifs.append(Notification(
                id=f"expired-{entry['product_id']}",
                type=TYPE_ALERT,
                title="Product Expired",
                message=f"{entry['name']} has expired",
                link="/inventory",
            ))
        else:
            expiring_count += 1

    if expiring_count:
        notifs.append(Notification(
            id="expiring-soon",
            type=TYPE_WARNING,
            title="Products Expiring Soon",
            message=f"{expiring_count} product(s) expiring within {window} days",
            link="/inventory",
        ))

    low_stock_count = len(low_stock_products())
    if low_stock_count:
        notifs.append(Notification(
            id="low-stock",
            type=TYPE_WARNING,
            title="Low Stock Alert",
            message=f"{low_stock_count} product(s) are below minimum stock level",
            link="/inventory",
        ))

    open_loans = db.session.query(func.count(Loan.id)).filter(Loan.status.in_(OPEN_LOAN_STATUSES)).scalar() or 0
    if open_loans:
        notifs.append(Notification(
            id="pending-loans",
            type=TYPE_INFO,
            title="Active Loans",
            message=f"{open_loans} loan(s) are currently active",
            link="/loans",
        ))

    overdue = db.session.query(func.count(Loan.id)).filter(
        Loan.status.in_(OPEN_LOAN_STATUSES),
        Loan.due_date.isnot(None),
        Loan.due_date < today,
    ).scalar() or 0
    if overdue:
        notifs.append(Notification(
            id="overdue-loans",
            type=TYPE_ALERT,
            title="Overdue Loans",
            message=f"{overdue} loan(s) are past due date",
            link="/loans",
        ))

    open_tickets = db.session.query(func.count(SupportTicket.id)).filter(SupportTicket.status == "open").scalar() or 0
    if open_tickets:
        notifs.append(Notification(
            id="open-tickets",
            type=TYPE_INFO,
            title="Open Tickets",
            message=f"{open_tickets} support ticket(s) need attention",
            link="/support",
        ))

    return notifs


class NotificationFeed:
    """
    The last derived notification list plus read flags.

    refresh() re-derives and carries the read flag over for every id that
    is still present; ids that disappear lose their state.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._items: list[Notification] = []
        self._read_ids: set[str] = set()
        self.refreshed_at: datetime | None = None

    def refresh(self, today: date | None = None) -> list[Notification]:
        fresh = derive_notifications(today)
        with self._lock:
            live_ids = {n.id for n in fresh}
            self._read_ids &= live_ids
            for n in fresh:
                n.read = n.id in self._read_ids
            self._items = fresh
            self.refreshed_at = utcnow()
            return list(self._items)

    @property
    def items(self) -> list[Notification]:
        with self._lock:
            return list(self._items)

    def mark_read(self, notification_id: str) -> bool:
        with self._lock:
            for n in self._items:
                if n.id == notification_id:
                    n.read = True
                    self._read_ids.add(n.id)
                    return True
            return False

    def mark_all_read(self) -> int:
        with self._lock:
            for n in self._items:
                n.read = True
                self._read_ids.add(n.id)
            return len(self._items)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.items if not n.read)

    @property
    def alert_count(self) -> int:
        return sum(1 for n in self.items if n.type == TYPE_ALERT)

    @property
    def warning_count(self) -> int:
        return sum(1 for n in self.items if n.type == TYPE_WARNING)

    def is_stale(self) -> bool:
        if self.refreshed_at is None:
            return True
        poll = current_app.config.get("NOTIFICATION_POLL_SECONDS", 300)
        return utcnow() - self.refreshed_at >= timedelta(seconds=poll)

    def summary(self) -> dict:
        return {
            "notifications": [n.to_dict() for n in self.items],
            "unread_count": self.unread_count,
            "alert_count": self.alert_count,
            "warning_count": self.warning_count,
            "refreshed_at": to_utc_z(self.refreshed_at),
        }


def get_feed() -> NotificationFeed:
    """The feed owned by the current app (one per process)."""
    feed = current_app.extensions.get("notification_feed")
    if feed is None:
        feed = NotificationFeed()
        current_app.extensions["notification_feed"] = feed
    return feed
