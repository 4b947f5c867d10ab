from __future__ import annotations

from ..extensions import db
from stockdesk.time_utils import to_utc_z, to_iso_date


LOAN_STATUS_PENDING = "pending"
LOAN_STATUS_ACTIVE = "active"
LOAN_STATUS_PAID = "paid"
LOAN_STATUS_DEFAULTED = "defaulted"
LOAN_STATUSES = (LOAN_STATUS_PENDING, LOAN_STATUS_ACTIVE, LOAN_STATUS_PAID, LOAN_STATUS_DEFAULTED)
OPEN_LOAN_STATUSES = (LOAN_STATUS_PENDING, LOAN_STATUS_ACTIVE)


class LoanTermsMixin:
    """
    Shared money columns for customer and employee loans.

    owed = principal * (1 + rate), balance = owed - paid.
    """
    principal_cents = db.Column(db.Integer, nullable=False)
    # Interest rate in basis points (500 = 5%)
    interest_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    due_date = db.Column(db.Date, nullable=True, index=True)
    status = db.Column(db.String(16), nullable=False, default=LOAN_STATUS_PENDING, index=True)
    notes = db.Column(db.Text, nullable=True)

    @property
    def total_owed_cents(self) -> int:
        interest = (self.principal_cents * (self.interest_rate_bps or 0) + 5000) // 10000
        return self.principal_cents + interest

    @property
    def balance_cents(self) -> int:
        return self.total_owed_cents - (self.paid_amount_cents or 0)

    def _terms_dict(self) -> dict:
        return {
            "principal_cents": self.principal_cents,
            "interest_rate_bps": self.interest_rate_bps,
            "paid_amount_cents": self.paid_amount_cents,
            "total_owed_cents": self.total_owed_cents,
            "balance_cents": self.balance_cents,
            "due_date": to_iso_date(self.due_date),
            "status": self.status,
            "notes": self.notes,
        }


class Loan(LoanTermsMixin, db.Model):
    """Money lent to a customer (store credit)."""
    __tablename__ = "loans"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("loans", lazy=True))
    payments = db.relationship("LoanPayment", backref="loan", lazy=True, cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else "Unknown",
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        data.update(self._terms_dict())
        return data


class LoanPayment(db.Model):
    __tablename__ = "loan_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    loan_id = db.Column(db.Integer, db.ForeignKey("loans.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    payment_date = db.Column(db.Date, nullable=False)
    payment_method = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "loan_id": self.loan_id,
            "amount_cents": self.amount_cents,
            "payment_date": to_iso_date(self.payment_date),
            "payment_method": self.payment_method,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
