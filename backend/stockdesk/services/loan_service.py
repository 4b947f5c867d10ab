# Overview: Customer and employee loans with payments that settle the balance.

"""
Loans are money lent out in integer cents.

    owed    = principal + round(principal * interest_rate_bps / 10000)
    balance = owed - paid

Status moves forward as payments arrive:

    pending/active --payment--> active      (balance > 0)
    pending/active --payment--> paid        (balance == 0)
    pending/active --mark----> defaulted

Paid and defaulted loans accept no more payments. Overpayment is refused.
"""

from __future__ import annotations

import logging
from datetime import date

from ..extensions import db
from ..models import Customer, Employee, EmployeeLoan, EmployeeLoanPayment, Loan, LoanPayment
from ..models.loans import (
    LOAN_STATUS_ACTIVE,
    LOAN_STATUS_DEFAULTED,
    LOAN_STATUS_PAID,
    LOAN_STATUS_PENDING,
    OPEN_LOAN_STATUSES,
)
from ..validation import ConflictError, NotFoundError, ValidationError
from stockdesk.time_utils import parse_iso_date, today
from .concurrency import lock_for_update, run_with_retry


logger = logging.getLogger(__name__)


class LoanStateError(ConflictError):
    """Raised when a loan cannot take the requested action in its current status."""


def _positive_cents(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer number of cents")
    if value <= 0:
        raise ValidationError(f"{field} must be > 0")
    return value


def _rate_bps(value) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("interest_rate_bps must be an integer")
    if value < 0 or value > 100_000:
        raise ValidationError("interest_rate_bps must be between 0 and 100000")
    return value


def _as_date(value, field: str) -> date | None:
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")


def _locked(model, loan_id: int):
    loan = lock_for_update(db.session.query(model).filter_by(id=loan_id)).first()
    if loan is None:
        raise NotFoundError("Loan not found")
    return loan


def _apply_payment(loan, payment_model, amount_cents, payment_date, payment_method, notes):
    amount_cents = _positive_cents(amount_cents, "amount_cents")
    if loan.status not in OPEN_LOAN_STATUSES:
        raise LoanStateError(f"Loan {loan.id} is {loan.status}")
    if amount_cents > loan.balance_cents:
        raise ValidationError(
            f"Payment of {amount_cents} exceeds outstanding balance of {loan.balance_cents}"
        )

    payment = payment_model(
        loan_id=loan.id,
        amount_cents=amount_cents,
        payment_date=_as_date(payment_date, "payment_date") or today(),
        payment_method=(payment_method or None),
        notes=notes,
    )
    db.session.add(payment)
    loan.paid_amount_cents = (loan.paid_amount_cents or 0) + amount_cents
    loan.status = LOAN_STATUS_PAID if loan.balance_cents <= 0 else LOAN_STATUS_ACTIVE
    db.session.commit()
    logger.info("Loan %s payment %s cents, status=%s", loan.id, amount_cents, loan.status)
    return payment


# -- customer loans --

def create_loan(
    customer_id: int | None,
    principal_cents: int,
    interest_rate_bps: int | None = 0,
    due_date=None,
    notes: str | None = None,
    actor_user_id: int | None = None,
) -> Loan:
    principal_cents = _positive_cents(principal_cents, "principal_cents")
    rate = _rate_bps(interest_rate_bps)
    due = _as_date(due_date, "due_date")

    def _op():
        if customer_id is not None and db.session.get(Customer, customer_id) is None:
            raise NotFoundError("Customer not found")
        loan = Loan(
            customer_id=customer_id,
            principal_cents=principal_cents,
            interest_rate_bps=rate,
            paid_amount_cents=0,
            due_date=due,
            status=LOAN_STATUS_PENDING,
            notes=notes,
            created_by_user_id=actor_user_id,
        )
        db.session.add(loan)
        db.session.commit()
        return loan

    return run_with_retry(_op)


def get_loan(loan_id: int) -> Loan:
    loan = db.session.get(Loan, loan_id)
    if loan is None:
        raise NotFoundError("Loan not found")
    return loan


def list_loans(status: str | None = None, customer_id: int | None = None) -> list[Loan]:
    q = db.session.query(Loan)
    if status:
        q = q.filter(Loan.status == status)
    if customer_id is not None:
        q = q.filter(Loan.customer_id == customer_id)
    return q.order_by(Loan.created_at.desc(), Loan.id.desc()).all()


def record_payment(loan_id: int, amount_cents: int, payment_date=None, payment_method: str | None = None,
                   notes: str | None = None) -> LoanPayment:
    def _op():
        loan = _locked(Loan, loan_id)
        return _apply_payment(loan, LoanPayment, amount_cents, payment_date, payment_method, notes)

    return run_with_retry(_op)


def mark_defaulted(loan_id: int) -> Loan:
    def _op():
        loan = _locked(Loan, loan_id)
        if loan.status not in OPEN_LOAN_STATUSES:
            raise LoanStateError(f"Loan {loan.id} is {loan.status}")
        loan.status = LOAN_STATUS_DEFAULTED
        db.session.commit()
        logger.warning("Loan %s marked defaulted with balance %s", loan.id, loan.balance_cents)
        return loan

    return run_with_retry(_op)


def delete_loan(loan_id: int) -> None:
    def _op():
        loan = _locked(Loan, loan_id)
        if loan.payments:
            raise ConflictError("Loan has payments and cannot be deleted")
        db.session.delete(loan)
        db.session.commit()

    run_with_retry(_op)


def overdue_loans(as_of: date | None = None) -> list[Loan]:
    as_of = as_of or today()
    return (
        db.session.query(Loan)
        .filter(Loan.status.in_(OPEN_LOAN_STATUSES))
        .filter(Loan.due_date.isnot(None))
        .filter(Loan.due_date < as_of)
        .order_by(Loan.due_date.asc())
        .all()
    )


# -- employee loans --

def create_employee_loan(
    employee_id: int,
    principal_cents: int,
    interest_rate_bps: int | None = 0,
    due_date=None,
    notes: str | None = None,
) -> EmployeeLoan:
    principal_cents = _positive_cents(principal_cents, "principal_cents")
    rate = _rate_bps(interest_rate_bps)
    due = _as_date(due_date, "due_date")

    def _op():
        if db.session.get(Employee, employee_id) is None:
            raise NotFoundError("Employee not found")
        loan = EmployeeLoan(
            employee_id=employee_id,
            principal_cents=principal_cents,
            interest_rate_bps=rate,
            paid_amount_cents=0,
            due_date=due,
            notes=notes,
        )
        db.session.add(loan)
        db.session.commit()
        return loan

    return run_with_retry(_op)


def list_employee_loans(employee_id: int | None = None, status: str | None = None) -> list[EmployeeLoan]:
    q = db.session.query(EmployeeLoan)
    if employee_id is not None:
        q = q.filter(EmployeeLoan.employee_id == employee_id)
    if status:
        q = q.filter(EmployeeLoan.status == status)
    return q.order_by(EmployeeLoan.created_at.desc(), EmployeeLoan.id.desc()).all()


def record_employee_loan_payment(loan_id: int, amount_cents: int, payment_date=None,
                                 payment_method: str | None = None, notes: str | None = None) -> EmployeeLoanPayment:
    def _op():
        loan = _locked(EmployeeLoan, loan_id)
        return _apply_payment(loan, EmployeeLoanPayment, amount_cents, payment_date, payment_method, notes)

    return run_with_retry(_op)
