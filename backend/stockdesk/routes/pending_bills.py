# Overview: Flask API routes for pending bills (parked carts).

from flask import Blueprint, request, g, jsonify

from ..services import pending_bill_service
from ..decorators import require_auth, require_permission
from .errors import json_error


pending_bills_bp = Blueprint("pending_bills", __name__, url_prefix="/api/pending-bills")


@pending_bills_bp.get("")
@require_auth
@require_permission("MANAGE_PENDING_BILLS")
def list_bills_route():
    bills = pending_bill_service.list_open_bills(search=request.args.get("search"))
    return jsonify({"items": [b.to_dict() for b in bills], "count": len(bills)})


@pending_bills_bp.post("")
@require_auth
@require_permission("MANAGE_PENDING_BILLS")
def create_bill_route():
    """Body: {customer_name, cart, warehouse_id, customer_phone?, notes?, customer_id?}"""
    data = request.get_json(silent=True) or {}
    try:
        bill = pending_bill_service.create_bill(
            data.get("customer_name"),
            data.get("cart"),
            data.get("warehouse_id"),
            customer_phone=data.get("customer_phone"),
            notes=data.get("notes"),
            customer_id=data.get("customer_id"),
            actor_user_id=g.current_user.id,
        )
    except Exception as exc:
        return json_error(exc, "create pending bill")
    return jsonify(bill.to_dict()), 201


@pending_bills_bp.get("/<int:bill_id>")
@require_auth
@require_permission("MANAGE_PENDING_BILLS")
def get_bill_route(bill_id: int):
    try:
        bill = pending_bill_service.get_bill(bill_id)
    except Exception as exc:
        return json_error(exc, "get pending bill")
    return jsonify(bill.to_dict())


@pending_bills_bp.post("/<int:bill_id>/merge")
@require_auth
@require_permission("MANAGE_PENDING_BILLS")
def merge_route(bill_id: int):
    """Body: {cart: [...]}"""
    data = request.get_json(silent=True) or {}
    try:
        bill = pending_bill_service.merge_cart_into(bill_id, data.get("cart"))
    except Exception as exc:
        return json_error(exc, "merge cart into bill")
    return jsonify(bill.to_dict())


@pending_bills_bp.get("/<int:bill_id>/cart")
@require_auth
@require_permission("MANAGE_PENDING_BILLS")
def load_to_cart_route(bill_id: int):
    try:
        lines = pending_bill_service.load_to_cart(bill_id)
    except Exception as exc:
        return json_error(exc, "load bill into cart")
    return jsonify({"bill_id": bill_id, "cart": lines, "total_cents": sum(l["subtotal_cents"] for l in lines)})


@pending_bills_bp.delete("/<int:bill_id>/items/<int:item_id>")
@require_auth
@require_permission("MANAGE_PENDING_BILLS")
def remove_item_route(bill_id: int, item_id: int):
    try:
        bill = pending_bill_service.remove_item(bill_id, item_id)
    except Exception as exc:
        return json_error(exc, "remove bill item")
    return jsonify(bill.to_dict())


@pending_bills_bp.post("/<int:bill_id>/close")
@require_auth
@require_permission("MANAGE_PENDING_BILLS")
def close_bill_route(bill_id: int):
    try:
        bill = pending_bill_service.close_bill(bill_id)
    except Exception as exc:
        return json_error(exc, "close pending bill")
    return jsonify(bill.to_dict())


@pending_bills_bp.delete("/<int:bill_id>")
@require_auth
@require_permission("MANAGE_PENDING_BILLS")
def delete_bill_route(bill_id: int):
    try:
        pending_bill_service.delete_bill(bill_id)
    except Exception as exc:
        return json_error(exc, "delete pending bill")
    return {"ok": True}, 200
