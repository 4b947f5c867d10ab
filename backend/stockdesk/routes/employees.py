# Overview: Flask API routes for attendance, leave, payroll and employee loans.

# Employee records themselves are served by the generic resources blueprint
# at /api/employees.

from flask import Blueprint, request, g, jsonify

from ..services import employee_service, loan_service
from ..decorators import require_auth, require_permission
from .errors import json_error


employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@employees_bp.get("/summary")
@require_auth
@require_permission("VIEW_EMPLOYEES")
def summary_route():
    return jsonify(employee_service.employee_summary())


@employees_bp.get("/attendance")
@require_auth
@require_permission("VIEW_EMPLOYEES")
def list_attendance_route():
    try:
        rows = employee_service.list_attendance(
            employee_id=request.args.get("employee_id", type=int),
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
    except Exception as exc:
        return json_error(exc, "list attendance")
    return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)})


@employees_bp.post("/<int:employee_id>/attendance")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def record_attendance_route(employee_id: int):
    data = request.get_json(silent=True) or {}
    try:
        row = employee_service.record_attendance(
            employee_id,
            attendance_date=data.get("date"),
            check_in=data.get("check_in"),
            check_out=data.get("check_out"),
            status=data.get("status") or "present",
            notes=data.get("notes"),
        )
    except Exception as exc:
        return json_error(exc, "record attendance")
    return jsonify(row.to_dict()), 201


@employees_bp.get("/leave")
@require_auth
@require_permission("VIEW_EMPLOYEES")
def list_leave_route():
    rows = employee_service.list_leave_requests(
        employee_id=request.args.get("employee_id", type=int),
        status=request.args.get("status") or None,
    )
    return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)})


@employees_bp.post("/<int:employee_id>/leave")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def request_leave_route(employee_id: int):
    data = request.get_json(silent=True) or {}
    try:
        leave = employee_service.request_leave(
            employee_id,
            data.get("leave_type"),
            data.get("start_date"),
            data.get("end_date"),
            reason=data.get("reason"),
        )
    except Exception as exc:
        return json_error(exc, "request leave")
    return jsonify(leave.to_dict()), 201


@employees_bp.post("/leave/<int:leave_id>/approve")
@require_auth
@require_permission("APPROVE_LEAVE")
def approve_leave_route(leave_id: int):
    try:
        leave = employee_service.approve_leave(leave_id, actor_user_id=g.current_user.id)
    except Exception as exc:
        return json_error(exc, "approve leave")
    return jsonify(leave.to_dict())


@employees_bp.post("/leave/<int:leave_id>/reject")
@require_auth
@require_permission("APPROVE_LEAVE")
def reject_leave_route(leave_id: int):
    try:
        leave = employee_service.reject_leave(leave_id, actor_user_id=g.current_user.id)
    except Exception as exc:
        return json_error(exc, "reject leave")
    return jsonify(leave.to_dict())


@employees_bp.get("/payroll")
@require_auth
@require_permission("VIEW_EMPLOYEES")
def list_payroll_route():
    rows = employee_service.list_payroll(employee_id=request.args.get("employee_id", type=int))
    return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)})


@employees_bp.post("/<int:employee_id>/payroll")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def create_payroll_route(employee_id: int):
    """Body: {period_start, period_end, base_salary_cents?, bonuses_cents?, deductions_cents?, payment_method?}"""
    data = request.get_json(silent=True) or {}
    try:
        row = employee_service.create_payroll(
            employee_id,
            data.get("period_start"),
            data.get("period_end"),
            base_salary_cents=data.get("base_salary_cents"),
            bonuses_cents=data.get("bonuses_cents", 0),
            deductions_cents=data.get("deductions_cents", 0),
            payment_method=data.get("payment_method"),
        )
    except Exception as exc:
        return json_error(exc, "create payroll")
    return jsonify(row.to_dict()), 201


@employees_bp.post("/payroll/<int:payroll_id>/pay")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def pay_payroll_route(payroll_id: int):
    try:
        row = employee_service.mark_payroll_paid(payroll_id)
    except Exception as exc:
        return json_error(exc, "mark payroll paid")
    return jsonify(row.to_dict())


@employees_bp.get("/loans")
@require_auth
@require_permission("VIEW_EMPLOYEES")
def list_employee_loans_route():
    loans = loan_service.list_employee_loans(
        employee_id=request.args.get("employee_id", type=int),
        status=request.args.get("status") or None,
    )
    return jsonify({"items": [loan.to_dict() for loan in loans], "count": len(loans)})


@employees_bp.post("/<int:employee_id>/loans")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def create_employee_loan_route(employee_id: int):
    data = request.get_json(silent=True) or {}
    try:
        loan = loan_service.create_employee_loan(
            employee_id,
            data.get("principal_cents"),
            interest_rate_bps=data.get("interest_rate_bps", 0),
            due_date=data.get("due_date"),
            notes=data.get("notes"),
        )
    except Exception as exc:
        return json_error(exc, "create employee loan")
    return jsonify(loan.to_dict()), 201


@employees_bp.post("/loans/<int:loan_id>/payments")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def employee_loan_payment_route(loan_id: int):
    data = request.get_json(silent=True) or {}
    try:
        payment = loan_service.record_employee_loan_payment(
            loan_id,
            data.get("amount_cents"),
            payment_date=data.get("payment_date"),
            payment_method=data.get("payment_method"),
            notes=data.get("notes"),
        )
    except Exception as exc:
        return json_error(exc, "record employee loan payment")
    return jsonify(payment.to_dict()), 201
