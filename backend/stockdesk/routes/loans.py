# Overview: Flask API routes for customer loans and their payments.

from flask import Blueprint, request, g, jsonify

from ..services import loan_service
from ..decorators import require_auth, require_permission
from .errors import json_error


loans_bp = Blueprint("loans", __name__, url_prefix="/api/loans")


@loans_bp.get("")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def list_loans_route():
    loans = loan_service.list_loans(
        status=request.args.get("status") or None,
        customer_id=request.args.get("customer_id", type=int),
    )
    return jsonify({
        "items": [loan.to_dict() for loan in loans],
        "count": len(loans),
        "outstanding_cents": sum(loan.balance_cents for loan in loans if loan.status in ("pending", "active")),
    })


@loans_bp.get("/overdue")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def overdue_loans_route():
    loans = loan_service.overdue_loans()
    return jsonify({"items": [loan.to_dict() for loan in loans], "count": len(loans)})


@loans_bp.post("")
@require_auth
@require_permission("MANAGE_LOANS")
def create_loan_route():
    """Body: {customer_id?, principal_cents, interest_rate_bps?, due_date?, notes?}"""
    data = request.get_json(silent=True) or {}
    try:
        loan = loan_service.create_loan(
            data.get("customer_id"),
            data.get("principal_cents"),
            interest_rate_bps=data.get("interest_rate_bps", 0),
            due_date=data.get("due_date"),
            notes=data.get("notes"),
            actor_user_id=g.current_user.id,
        )
    except Exception as exc:
        return json_error(exc, "create loan")
    return jsonify(loan.to_dict()), 201


@loans_bp.get("/<int:loan_id>")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def get_loan_route(loan_id: int):
    try:
        loan = loan_service.get_loan(loan_id)
    except Exception as exc:
        return json_error(exc, "get loan")
    data = loan.to_dict()
    data["payments"] = [p.to_dict() for p in loan.payments]
    return jsonify(data)


@loans_bp.post("/<int:loan_id>/payments")
@require_auth
@require_permission("MANAGE_LOANS")
def record_payment_route(loan_id: int):
    """Body: {amount_cents, payment_date?, payment_method?, notes?}"""
    data = request.get_json(silent=True) or {}
    try:
        payment = loan_service.record_payment(
            loan_id,
            data.get("amount_cents"),
            payment_date=data.get("payment_date"),
            payment_method=data.get("payment_method"),
            notes=data.get("notes"),
        )
        loan = loan_service.get_loan(loan_id)
    except Exception as exc:
        return json_error(exc, "record loan payment")
    return jsonify({"payment": payment.to_dict(), "loan": loan.to_dict()}), 201


@loans_bp.post("/<int:loan_id>/default")
@require_auth
@require_permission("MANAGE_LOANS")
def mark_defaulted_route(loan_id: int):
    try:
        loan = loan_service.mark_defaulted(loan_id)
    except Exception as exc:
        return json_error(exc, "mark loan defaulted")
    return jsonify(loan.to_dict())


@loans_bp.delete("/<int:loan_id>")
@require_auth
@require_permission("MANAGE_LOANS")
def delete_loan_route(loan_id: int):
    try:
        loan_service.delete_loan(loan_id)
    except Exception as exc:
        return json_error(exc, "delete loan")
    return {"ok": True}, 200
