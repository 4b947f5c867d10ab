from __future__ import annotations

from ..extensions import db
from .loans import LoanTermsMixin, LOAN_STATUS_ACTIVE
from stockdesk.time_utils import to_utc_z, to_iso_date


class Employee(db.Model):
    __tablename__ = "employees"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(255), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    position = db.Column(db.String(120), nullable=True)
    department = db.Column(db.String(120), nullable=True)
    salary_cents = db.Column(db.Integer, nullable=False, default=0)
    hire_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "position": self.position,
            "department": self.department,
            "salary_cents": self.salary_cents,
            "hire_date": to_iso_date(self.hire_date),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class Attendance(db.Model):
    __tablename__ = "attendance"
    __table_args__ = (
        db.UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    check_in = db.Column(db.DateTime(timezone=True), nullable=True)
    check_out = db.Column(db.DateTime(timezone=True), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="present")
    notes = db.Column(db.Text, nullable=True)

    employee = db.relationship("Employee", backref=db.backref("attendance", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "date": to_iso_date(self.date),
            "check_in": to_utc_z(self.check_in),
            "check_out": to_utc_z(self.check_out),
            "status": self.status,
            "notes": self.notes,
        }


class LeaveRequest(db.Model):
    __tablename__ = "leave_requests"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    leave_type = db.Column(db.String(32), nullable=False, default="annual")
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    reason = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    employee = db.relationship("Employee", backref=db.backref("leave_requests", lazy=True, cascade="all, delete-orphan"))

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "leave_type": self.leave_type,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "days": self.days,
            "reason": self.reason,
            "status": self.status,
            "approved_by_user_id": self.approved_by_user_id,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "created_at": to_utc_z(self.created_at),
        }


class Payroll(db.Model):
    __tablename__ = "payroll"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)
    gross_cents = db.Column(db.Integer, nullable=False)
    deductions_cents = db.Column(db.Integer, nullable=False, default=0)
    net_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="pending")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    employee = db.relationship("Employee", backref=db.backref("payroll", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "period_start": to_iso_date(self.period_start),
            "period_end": to_iso_date(self.period_end),
            "gross_cents": self.gross_cents,
            "deductions_cents": self.deductions_cents,
            "net_cents": self.net_cents,
            "payment_method": self.payment_method,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class EmployeeLoan(LoanTermsMixin, db.Model):
    __tablename__ = "employee_loans"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    employee = db.relationship("Employee", backref=db.backref("loans", lazy=True))
    payments = db.relationship("EmployeeLoanPayment", backref="loan", lazy=True, cascade="all, delete-orphan")

    def __init__(self, **kwargs):
        kwargs.setdefault("status", LOAN_STATUS_ACTIVE)
        super().__init__(**kwargs)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "employee_id": self.employee_id,
            "employee_name": self.employee.full_name if self.employee else None,
            "created_at": to_utc_z(self.created_at),
        }
        data.update(self._terms_dict())
        return data


class EmployeeLoanPayment(db.Model):
    __tablename__ = "employee_loan_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    loan_id = db.Column(db.Integer, db.ForeignKey("employee_loans.id"), nullable=False, index=True)
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
