"""
Loan, attendance, leave and payroll tests.
"""

from datetime import date, datetime, timedelta

import pytest

from stockdesk.extensions import db
from stockdesk.models import Customer, Employee, Payroll
from stockdesk.services import employee_service, loan_service
from stockdesk.services.crud_service import get_resource
from stockdesk.services.loan_service import LoanStateError
from stockdesk.time_utils import today
from stockdesk.validation import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def customer(db_session):
    c = Customer(name="Acme Ltd")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture
def employee(db_session):
    e = Employee(full_name="Grace Hopper", salary_cents=300_000, status="active")
    db_session.add(e)
    db_session.commit()
    return e


class TestCustomerLoans:

    def test_interest_and_balance(self, customer):
        loan = loan_service.create_loan(customer.id, 10_000, interest_rate_bps=500)
        assert loan.status == "pending"
        assert loan.total_owed_cents == 10_500
        assert loan.balance_cents == 10_500

    def test_payments_move_status_forward(self, customer):
        loan = loan_service.create_loan(customer.id, 10_000)

        loan_service.record_payment(loan.id, 4_000)
        assert loan_service.get_loan(loan.id).status == "active"

        loan_service.record_payment(loan.id, 6_000, payment_date="2026-01-31")
        loan = loan_service.get_loan(loan.id)
        assert loan.status == "paid"
        assert loan.balance_cents == 0
        assert [p.amount_cents for p in loan.payments] == [4_000, 6_000]

    def test_overpayment_is_refused(self, customer):
        loan = loan_service.create_loan(customer.id, 1_000)
        with pytest.raises(ValidationError, match="exceeds outstanding balance of 1000"):
            loan_service.record_payment(loan.id, 1_001)
        assert loan_service.get_loan(loan.id).paid_amount_cents == 0

    def test_paid_and_defaulted_loans_take_no_payments(self, customer):
        paid = loan_service.create_loan(customer.id, 500)
        loan_service.record_payment(paid.id, 500)
        with pytest.raises(LoanStateError):
            loan_service.record_payment(paid.id, 1)

        bad = loan_service.create_loan(customer.id, 500)
        loan_service.mark_defaulted(bad.id)
        with pytest.raises(LoanStateError):
            loan_service.record_payment(bad.id, 100)
        with pytest.raises(LoanStateError):
            loan_service.mark_defaulted(bad.id)

    def test_invalid_amounts(self, customer):
        with pytest.raises(ValidationError):
            loan_service.create_loan(customer.id, 0)
        with pytest.raises(ValidationError):
            loan_service.create_loan(customer.id, 12.5)
        with pytest.raises(ValidationError):
            loan_service.create_loan(customer.id, 100, interest_rate_bps=-1)
        with pytest.raises(NotFoundError):
            loan_service.create_loan(9999, 100)

    def test_delete_only_without_payments(self, customer):
        untouched = loan_service.create_loan(customer.id, 100)
        loan_service.delete_loan(untouched.id)
        with pytest.raises(NotFoundError):
            loan_service.get_loan(untouched.id)

        paid_some = loan_service.create_loan(customer.id, 100)
        loan_service.record_payment(paid_some.id, 10)
        with pytest.raises(ConflictError):
            loan_service.delete_loan(paid_some.id)

    def test_overdue_and_filters(self, customer):
        late = loan_service.create_loan(customer.id, 100, due_date=today() - timedelta(days=3))
        loan_service.create_loan(customer.id, 100, due_date=today() + timedelta(days=3))
        settled = loan_service.create_loan(customer.id, 100, due_date=today() - timedelta(days=3))
        loan_service.record_payment(settled.id, 100)

        assert [loan.id for loan in loan_service.overdue_loans()] == [late.id]
        assert [loan.id for loan in loan_service.list_loans(status="paid")] == [settled.id]
        assert len(loan_service.list_loans(customer_id=customer.id)) == 3


class TestEmployeeLoans:

    def test_employee_loan_starts_active(self, employee):
        loan = loan_service.create_employee_loan(employee.id, 20_000)
        assert loan.status == "active"

        loan_service.record_employee_loan_payment(loan.id, 20_000)
        assert loan_service.list_employee_loans(employee.id)[0].status == "paid"

    def test_unknown_employee(self, db_session):
        with pytest.raises(NotFoundError, match="Employee not found"):
            loan_service.create_employee_loan(12345, 100)


class TestAttendance:

    def test_one_record_per_day(self, employee):
        day = date(2026, 4, 1)
        employee_service.record_attendance(
            employee.id, day, check_in="2026-04-01T08:00:00", check_out="2026-04-01T17:00:00"
        )
        with pytest.raises(ConflictError, match="Attendance already recorded for 2026-04-01"):
            employee_service.record_attendance(employee.id, day)

    def test_check_out_before_check_in(self, employee):
        with pytest.raises(ValidationError, match="check_out must be after check_in"):
            employee_service.record_attendance(
                employee.id, "2026-04-02",
                check_in=datetime(2026, 4, 2, 17, 0), check_out=datetime(2026, 4, 2, 8, 0),
            )

    def test_unknown_status(self, employee):
        with pytest.raises(ValidationError):
            employee_service.record_attendance(employee.id, "2026-04-02", status="sleeping")

    def test_range_filter(self, employee):
        for day in ("2026-04-01", "2026-04-02", "2026-04-03"):
            employee_service.record_attendance(employee.id, day)
        rows = employee_service.list_attendance(employee.id, start="2026-04-02", end="2026-04-03")
        assert [r.date.isoformat() for r in rows] == ["2026-04-03", "2026-04-02"]


class TestLeave:

    def test_approve_once(self, employee):
        leave = employee_service.request_leave(employee.id, "annual", "2026-05-01", "2026-05-05", "Holiday")
        assert leave.status == "pending"

        approved = employee_service.approve_leave(leave.id, actor_user_id=None)
        assert approved.status == "approved"
        assert approved.approved_at is not None

        with pytest.raises(ConflictError):
            employee_service.reject_leave(leave.id)

    def test_dates_and_type_validated(self, employee):
        with pytest.raises(ValidationError):
            employee_service.request_leave(employee.id, "sabbatical", "2026-05-01", "2026-05-02")
        with pytest.raises(ValidationError, match="end_date must be on or after start_date"):
            employee_service.request_leave(employee.id, "sick", "2026-05-03", "2026-05-02")


class TestPayroll:

    def test_net_pay(self, employee):
        row = employee_service.create_payroll(
            employee.id, "2026-04-01", "2026-04-30", bonuses_cents=20_000, deductions_cents=50_000
        )
        assert row.gross_cents == 320_000
        assert row.net_cents == 270_000
        assert row.status == "pending"

        paid = employee_service.mark_payroll_paid(row.id)
        assert paid.status == "paid"
        with pytest.raises(ConflictError):
            employee_service.mark_payroll_paid(row.id)

    def test_deductions_cannot_exceed_gross(self, employee):
        with pytest.raises(ValidationError):
            employee_service.create_payroll(
                employee.id, "2026-04-01", "2026-04-30", base_salary_cents=100, deductions_cents=101
            )

    def test_summary(self, employee):
        employee_service.request_leave(employee.id, "sick", "2026-05-01", "2026-05-01")
        loan = loan_service.create_employee_loan(employee.id, 10_000)
        loan_service.record_employee_loan_payment(loan.id, 2_500)

        summary = employee_service.employee_summary()
        assert summary == {
            "active_employees": 1,
            "total_salary_cents": 300_000,
            "pending_leaves": 1,
            "outstanding_loans_cents": 7_500,
        }


class TestEmployeeDelete:

    def test_payroll_history_blocks_delete(self, employee):
        row = employee_service.create_payroll(employee.id, "2026-04-01", "2026-04-30")
        employee_service.mark_payroll_paid(row.id)

        with pytest.raises(ConflictError, match="employee has payroll records"):
            get_resource("employees").delete(employee.id)

        assert db.session.get(Employee, employee.id) is not None
        assert db.session.query(Payroll).filter_by(employee_id=employee.id).count() == 1

    def test_attendance_and_leave_block_delete(self, db_session):
        employees = get_resource("employees")
        present = employees.create({"full_name": "Ada Lovelace"})
        employee_service.record_attendance(present.id, "2026-05-04")
        on_leave = employees.create({"full_name": "Alan Turing"})
        employee_service.request_leave(on_leave.id, "annual", "2026-06-01", "2026-06-05")

        with pytest.raises(ConflictError, match="attendance records"):
            employees.delete(present.id)
        with pytest.raises(ConflictError, match="leave requests"):
            employees.bulk_delete([on_leave.id])

    def test_employee_without_history_can_be_deleted(self, employee):
        get_resource("employees").delete(employee.id)
        assert db.session.get(Employee, employee.id) is None
