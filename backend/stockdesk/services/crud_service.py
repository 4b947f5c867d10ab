# Overview: Generic list/search/paginate/create/update/delete for plain back-office tables.

"""
Every simple table gets the same contract through a CrudResource:

    list(search, page, page_size) -> {"items", "count", "pagination"}
    get(id) / create(payload) / update(id, payload) / delete(id)
    bulk_delete(ids) -> number deleted (all-or-nothing)

Search is a case-insensitive substring match over a fixed field set.
Payloads are validated against a ModelValidationPolicy and SQLAlchemy
column metadata; per-table checks run on the row after the patch is
applied. A delete guard can refuse deletes of referenced rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from flask import current_app
from sqlalchemy import String, cast, func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    Attendance,
    Budget,
    Category,
    Customer,
    Employee,
    EmployeeLoan,
    Expense,
    ExpenseCategory,
    LeaveRequest,
    Loan,
    Payroll,
    PendingBill,
    Product,
    Supplier,
    SupportTicket,
    Transaction,
)
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_amount,
    validate_payload,
)
from .concurrency import lock_for_update, run_with_retry


@dataclass
class CrudResource:
    name: str
    model: type
    policy: ModelValidationPolicy
    search_fields: tuple[str, ...]
    order_by: tuple[str, ...] = ("id",)
    read_only: bool = False
    label: str = "Record"
    check: Callable | None = None
    delete_guard: Callable | None = None
    extra_filters: dict = field(default_factory=dict)

    # -- reads --

    def _order(self):
        clauses = []
        for name in self.order_by:
            desc = name.startswith("-")
            col = getattr(self.model, name.lstrip("-"))
            clauses.append(col.desc() if desc else col.asc())
        return clauses

    def query(self, search: str | None = None, filters: dict | None = None):
        q = db.session.query(self.model)
        for key, value in (filters or {}).items():
            if key not in self.extra_filters or value is None:
                continue
            q = q.filter(getattr(self.model, self.extra_filters[key]) == value)
        term = (search or "").strip().lower()
        if term:
            pattern = f"%{term}%"
            q = q.filter(db.or_(*[
                func.lower(cast(getattr(self.model, f), String)).like(pattern) for f in self.search_fields
            ]))
        return q.order_by(*self._order())

    def list(self, search: str | None = None, page: int = 1, page_size: int | None = None,
             filters: dict | None = None) -> dict:
        default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 100)
        max_size = current_app.config.get("MAX_PAGE_SIZE", 500)
        page_size = min(max(page_size or default_size, 1), max_size)
        page = max(page or 1, 1)

        q = self.query(search, filters)
        total = q.count()
        total_pages = (total + page_size - 1) // page_size if total > 0 else 1
        rows = q.offset((page - 1) * page_size).limit(page_size).all()
        return {
            "items": [r.to_dict() for r in rows],
            "count": len(rows),
            "pagination": {
                "page": page,
                "per_page": page_size,
                "total": total,
                "total_pages": total_pages,
                "has_next": page < total_pages,
                "has_prev": page > 1,
            },
        }

    def get(self, row_id: int):
        row = db.session.get(self.model, row_id)
        if row is None:
            raise NotFoundError(f"{self.label} not found")
        return row

    # -- writes --

    def _require_writable(self) -> None:
        if self.read_only:
            raise ConflictError(f"{self.label} records are read-only")

    def _commit(self) -> None:
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise ConflictError(f"{self.label} conflicts with an existing record") from exc

    def create(self, payload: dict, actor_user_id: int | None = None):
        self._require_writable()
        patch = validate_payload(model=self.model, payload=payload, policy=self.policy, partial=False)

        def _op():
            row = self.model()
            for k, v in patch.items():
                setattr(row, k, v)
            if actor_user_id is not None and hasattr(self.model, "created_by_user_id"):
                row.created_by_user_id = actor_user_id
            if self.check:
                self.check(row)
            db.session.add(row)
            self._commit()
            return row

        return run_with_retry(_op)

    def update(self, row_id: int, payload: dict):
        self._require_writable()
        patch = validate_payload(model=self.model, payload=payload, policy=self.policy, partial=True)

        def _op():
            row = lock_for_update(db.session.query(self.model).filter_by(id=row_id)).first()
            if row is None:
                raise NotFoundError(f"{self.label} not found")
            for k, v in patch.items():
                setattr(row, k, v)
            if self.check:
                self.check(row)
            self._commit()
            return row

        return run_with_retry(_op)

    def _delete_inner(self, row) -> None:
        if self.delete_guard:
            reason = self.delete_guard(row)
            if reason:
                raise ConflictError(f"Cannot delete {self.label.lower()} {row.id}: {reason}")
        db.session.delete(row)

    def delete(self, row_id: int) -> None:
        self._require_writable()

        def _op():
            row = lock_for_update(db.session.query(self.model).filter_by(id=row_id)).first()
            if row is None:
                raise NotFoundError(f"{self.label} not found")
            self._delete_inner(row)
            self._commit()

        run_with_retry(_op)

    def bulk_delete(self, ids) -> int:
        """Delete every id or none of them."""
        self._require_writable()
        if not isinstance(ids, list) or not ids:
            raise ValidationError("ids must be a non-empty list")
        if any(isinstance(i, bool) or not isinstance(i, int) for i in ids):
            raise ValidationError("ids must be integers")
        wanted = sorted(set(ids))

        def _op():
            rows = lock_for_update(
                db.session.query(self.model).filter(self.model.id.in_(wanted))
            ).all()
            found = {r.id for r in rows}
            missing = [i for i in wanted if i not in found]
            if missing:
                raise NotFoundError(f"{self.label} not found: {', '.join(str(i) for i in missing)}")
            for row in rows:
                self._delete_inner(row)
            self._commit()
            return len(rows)

        return run_with_retry(_op)


# -- per-table checks and guards --

def _require_name(row) -> None:
    if not (row.name or "").strip():
        raise ValidationError("name cannot be blank")


def _check_email(value: str | None) -> None:
    if value and "@" not in value:
        raise ValidationError("email is invalid")


def _check_customer(row) -> None:
    _require_name(row)
    _check_email(row.email)


def _check_supplier(row) -> None:
    _require_name(row)
    _check_email(row.email)


def _check_expense(row) -> None:
    enforce_rules_amount({"amount_cents": row.amount_cents}, "amount_cents")
    if row.category_id is not None and db.session.get(ExpenseCategory, row.category_id) is None:
        raise NotFoundError("Expense category not found")


def _check_budget(row) -> None:
    enforce_rules_amount({"amount_cents": row.amount_cents}, "amount_cents")
    if db.session.get(ExpenseCategory, row.category_id) is None:
        raise NotFoundError("Expense category not found")
    if row.period_end < row.period_start:
        raise ValidationError("period_end must be on or after period_start")


def _check_employee(row) -> None:
    if not (row.full_name or "").strip():
        raise ValidationError("full_name cannot be blank")
    _check_email(row.email)
    enforce_rules_amount({"salary_cents": row.salary_cents}, "salary_cents", allow_zero=True)
    if row.status is not None and row.status not in ("active", "inactive", "terminated", "on_leave"):
        raise ValidationError("status must be one of: active, inactive, terminated, on_leave")


def _check_ticket(row) -> None:
    if not (row.subject or "").strip():
        raise ValidationError("subject cannot be blank")
    if row.status is not None and row.status not in ("open", "in_progress", "resolved", "closed"):
        raise ValidationError("status must be one of: open, in_progress, resolved, closed")
    if row.priority is not None and row.priority not in ("low", "normal", "high", "urgent"):
        raise ValidationError("priority must be one of: low, normal, high, urgent")


def _guard_customer(row) -> str | None:
    if db.session.query(Loan.id).filter_by(customer_id=row.id).first():
        return "customer has loans"
    if db.session.query(Transaction.id).filter_by(customer_id=row.id).first():
        return "customer has sales"
    if db.session.query(PendingBill.id).filter_by(customer_id=row.id).first():
        return "customer has pending bills"
    return None


def _guard_category(row) -> str | None:
    if db.session.query(Product.id).filter_by(category_id=row.id).first():
        return "category is used by products"
    return None


def _guard_expense_category(row) -> str | None:
    if db.session.query(Expense.id).filter_by(category_id=row.id).first():
        return "category has expenses"
    if db.session.query(Budget.id).filter_by(category_id=row.id).first():
        return "category has budgets"
    return None


def _guard_employee(row) -> str | None:
    for model, label in (
        (EmployeeLoan, "loans"),
        (Payroll, "payroll records"),
        (Attendance, "attendance records"),
        (LeaveRequest, "leave requests"),
    ):
        if db.session.query(model.id).filter_by(employee_id=row.id).first():
            return f"employee has {label}"
    return None


RESOURCES: dict[str, CrudResource] = {
    r.name: r
    for r in (
        CrudResource(
            name="customers",
            model=Customer,
            label="Customer",
            policy=ModelValidationPolicy(
                writable_fields={"name", "email", "phone", "address", "notes"},
                required_on_create={"name"},
            ),
            search_fields=("name", "email", "phone"),
            order_by=("name", "id"),
            check=_check_customer,
            delete_guard=_guard_customer,
        ),
        CrudResource(
            name="suppliers",
            model=Supplier,
            label="Supplier",
            policy=ModelValidationPolicy(
                writable_fields={"name", "contact_person", "email", "phone", "address", "is_active"},
                required_on_create={"name"},
            ),
            search_fields=("name", "contact_person", "email", "phone"),
            order_by=("name", "id"),
            check=_check_supplier,
        ),
        CrudResource(
            name="categories",
            model=Category,
            label="Category",
            policy=ModelValidationPolicy(writable_fields={"name", "description"}, required_on_create={"name"}),
            search_fields=("name", "description"),
            order_by=("name",),
            check=_require_name,
            delete_guard=_guard_category,
        ),
        CrudResource(
            name="expense_categories",
            model=ExpenseCategory,
            label="Expense category",
            policy=ModelValidationPolicy(writable_fields={"name", "description"}, required_on_create={"name"}),
            search_fields=("name", "description"),
            order_by=("name",),
            check=_require_name,
            delete_guard=_guard_expense_category,
        ),
        CrudResource(
            name="expenses",
            model=Expense,
            label="Expense",
            policy=ModelValidationPolicy(
                writable_fields={"category_id", "amount_cents", "description", "expense_date", "payment_method", "vendor"},
                required_on_create={"amount_cents", "expense_date"},
            ),
            search_fields=("description", "vendor", "payment_method"),
            order_by=("-expense_date", "-id"),
            check=_check_expense,
            extra_filters={"category_id": "category_id"},
        ),
        CrudResource(
            name="budgets",
            model=Budget,
            label="Budget",
            policy=ModelValidationPolicy(
                writable_fields={"category_id", "amount_cents", "period_start", "period_end", "notes"},
                required_on_create={"category_id", "amount_cents", "period_start", "period_end"},
            ),
            search_fields=("notes",),
            order_by=("-period_start", "-id"),
            check=_check_budget,
            extra_filters={"category_id": "category_id"},
        ),
        CrudResource(
            name="employees",
            model=Employee,
            label="Employee",
            policy=ModelValidationPolicy(
                writable_fields={
                    "full_name", "email", "phone", "position", "department",
                    "salary_cents", "hire_date", "status",
                },
                required_on_create={"full_name"},
            ),
            search_fields=("full_name", "email", "phone", "position", "department"),
            order_by=("full_name", "id"),
            check=_check_employee,
            delete_guard=_guard_employee,
            extra_filters={"status": "status"},
        ),
        CrudResource(
            name="transactions",
            model=Transaction,
            label="Transaction",
            policy=ModelValidationPolicy(writable_fields=set()),
            search_fields=("transaction_number", "payment_method", "status"),
            order_by=("-created_at", "-id"),
            read_only=True,
            extra_filters={"customer_id": "customer_id", "payment_method": "payment_method"},
        ),
        CrudResource(
            name="support_tickets",
            model=SupportTicket,
            label="Support ticket",
            policy=ModelValidationPolicy(
                writable_fields={"subject", "description", "status", "priority"},
                required_on_create={"subject"},
            ),
            search_fields=("subject", "description", "status"),
            order_by=("-created_at", "-id"),
            check=_check_ticket,
            extra_filters={"status": "status"},
        ),
    )
}


def get_resource(name: str) -> CrudResource:
    resource = RESOURCES.get(name)
    if resource is None:
        raise NotFoundError(f"Unknown resource: {name}")
    return resource
