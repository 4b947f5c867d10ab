# Overview: Attendance, leave requests and payroll for employees.

from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Attendance, Employee, EmployeeLoan, LeaveRequest, Payroll
from ..models.loans import LOAN_STATUS_ACTIVE
from ..validation import ConflictError, NotFoundError, ValidationError
from stockdesk.time_utils import parse_iso_date, parse_iso_datetime, today, utcnow
from .concurrency import lock_for_update, run_with_retry


logger = logging.getLogger(__name__)

ATTENDANCE_STATUSES = ("present", "absent", "late", "half_day", "on_leave")
LEAVE_TYPES = ("annual", "sick", "unpaid", "maternity", "paternity", "other")
LEAVE_PENDING = "pending"
LEAVE_APPROVED = "approved"
LEAVE_REJECTED = "rejected"
PAYROLL_PENDING = "pending"
PAYROLL_PAID = "paid"


def _employee(employee_id: int) -> Employee:
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")
    return employee


def _date(value, field: str, *, required: bool = False) -> date | None:
    try:
        d = parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")
    if d is None and required:
        raise ValidationError(f"{field} is required")
    return d


def _datetime(value, field: str):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return parse_iso_datetime(value)
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def _cents(value, field: str, *, allow_zero: bool = True) -> int:
    if value is None:
        value = 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer number of cents")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(f"{field} must be {'>= 0' if allow_zero else '> 0'}")
    return value


# -- attendance --

def record_attendance(
    employee_id: int,
    attendance_date=None,
    check_in=None,
    check_out=None,
    status: str = "present",
    notes: str | None = None,
) -> Attendance:
    """One row per employee per day; a second record for the same day is a conflict."""
    day = _date(attendance_date, "date") or today()
    status = (status or "present").strip().lower()
    if status not in ATTENDANCE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ATTENDANCE_STATUSES)}")
    start = _datetime(check_in, "check_in")
    end = _datetime(check_out, "check_out")
    if start and end and end < start:
        raise ValidationError("check_out must be after check_in")

    def _op():
        _employee(employee_id)
        row = Attendance(
            employee_id=employee_id,
            date=day,
            check_in=start,
            check_out=end,
            status=status,
            notes=notes,
        )
        db.session.add(row)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise ConflictError(f"Attendance already recorded for {day.isoformat()}") from exc
        return row

    return run_with_retry(_op)


def list_attendance(employee_id: int | None = None, start=None, end=None) -> list[Attendance]:
    q = db.session.query(Attendance)
    if employee_id is not None:
        q = q.filter(Attendance.employee_id == employee_id)
    start_d = _date(start, "start")
    end_d = _date(end, "end")
    if start_d:
        q = q.filter(Attendance.date >= start_d)
    if end_d:
        q = q.filter(Attendance.date <= end_d)
    return q.order_by(Attendance.date.desc(), Attendance.id.desc()).all()


# -- leave --

def request_leave(employee_id: int, leave_type: str, start_date, end_date, reason: str | None = None) -> LeaveRequest:
    leave_type = (leave_type or "").strip().lower()
    if leave_type not in LEAVE_TYPES:
        raise ValidationError(f"leave_type must be one of: {', '.join(LEAVE_TYPES)}")
    start = _date(start_date, "start_date", required=True)
    end = _date(end_date, "end_date", required=True)
    if end < start:
        raise ValidationError("end_date must be on or after start_date")

    def _op():
        _employee(employee_id)
        leave = LeaveRequest(
            employee_id=employee_id,
            leave_type=leave_type,
            start_date=start,
            end_date=end,
            reason=reason,
            status=LEAVE_PENDING,
        )
        db.session.add(leave)
        db.session.commit()
        return leave

    return run_with_retry(_op)


def _decide_leave(leave_id: int, status: str, actor_user_id: int | None) -> LeaveRequest:
    def _op():
        leave = lock_for_update(db.session.query(LeaveRequest).filter_by(id=leave_id)).first()
        if leave is None:
            raise NotFoundError("Leave request not found")
        if leave.status != LEAVE_PENDING:
            raise ConflictError(f"Leave request {leave.id} is already {leave.status}")
        leave.status = status
        leave.approved_by_user_id = actor_user_id
        leave.approved_at = utcnow()
        db.session.commit()
        logger.info("Leave request %s %s by user %s", leave.id, status, actor_user_id)
        return leave

    return run_with_retry(_op)


def approve_leave(leave_id: int, actor_user_id: int | None = None) -> LeaveRequest:
    return _decide_leave(leave_id, LEAVE_APPROVED, actor_user_id)


def reject_leave(leave_id: int, actor_user_id: int | None = None) -> LeaveRequest:
    return _decide_leave(leave_id, LEAVE_REJECTED, actor_user_id)


def list_leave_requests(employee_id: int | None = None, status: str | None = None) -> list[LeaveRequest]:
    q = db.session.query(LeaveRequest)
    if employee_id is not None:
        q = q.filter(LeaveRequest.employee_id == employee_id)
    if status:
        q = q.filter(LeaveRequest.status == status)
    return q.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()


# -- payroll --

def create_payroll(
    employee_id: int,
    period_start,
    period_end,
    base_salary_cents: int | None = None,
    bonuses_cents: int = 0,
    deductions_cents: int = 0,
    payment_method: str | None = None,
) -> Payroll:
    """
    Net pay = base salary + bonuses - deductions.

    base_salary_cents defaults to the employee's salary.
    """
    start = _date(period_start, "period_start", required=True)
    end = _date(period_end, "period_end", required=True)
    if end < start:
        raise ValidationError("period_end must be on or after period_start")
    bonuses = _cents(bonuses_cents, "bonuses_cents")
    deductions = _cents(deductions_cents, "deductions_cents")

    def _op():
        employee = _employee(employee_id)
        base = _cents(employee.salary_cents if base_salary_cents is None else base_salary_cents,
                      "base_salary_cents")
        gross = base + bonuses
        if deductions > gross:
            raise ValidationError("deductions_cents cannot exceed gross pay")
        row = Payroll(
            employee_id=employee_id,
            period_start=start,
            period_end=end,
            gross_cents=gross,
            deductions_cents=deductions,
            net_cents=gross - deductions,
            payment_method=payment_method,
            status=PAYROLL_PENDING,
        )
        db.session.add(row)
        db.session.commit()
        return row

    return run_with_retry(_op)


def mark_payroll_paid(payroll_id: int) -> Payroll:
    def _op():
        row = lock_for_update(db.session.query(Payroll).filter_by(id=payroll_id)).first()
        if row is None:
            raise NotFoundError("Payroll not found")
        if row.status == PAYROLL_PAID:
            raise ConflictError(f"Payroll {row.id} is already paid")
        row.status = PAYROLL_PAID
        db.session.commit()
        return row

    return run_with_retry(_op)


def list_payroll(employee_id: int | None = None) -> list[Payroll]:
    q = db.session.query(Payroll)
    if employee_id is not None:
        q = q.filter(Payroll.employee_id == employee_id)
    return q.order_by(Payroll.period_start.desc(), Payroll.id.desc()).all()


def employee_summary() -> dict:
    """Headline numbers for the employees page."""
    active = db.session.query(Employee).filter(Employee.status == "active").all()
    loans = db.session.query(EmployeeLoan).filter(EmployeeLoan.status == LOAN_STATUS_ACTIVE).all()
    return {
        "active_employees": len(active),
        "total_salary_cents": sum(e.salary_cents or 0 for e in active),
        "pending_leaves": db.session.query(LeaveRequest).filter(LeaveRequest.status == LEAVE_PENDING).count(),
        "outstanding_loans_cents": sum(loan.balance_cents for loan in loans),
    }
