# Overview: Flask API routes for the point of sale: manual items, checkout, receipts.

from flask import Blueprint, request, g, jsonify

from ..services import pos_service, warehouse_service
from ..decorators import require_auth, require_permission
from .errors import json_error


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


@pos_bp.post("/manual-item")
@require_auth
@require_permission("CREATE_SALE")
def manual_item_route():
    """
    Body: {name, quantity, price_cents}

    Creates the product, stocks it in the Extra warehouse and returns the
    cart line to add.
    """
    data = request.get_json(silent=True) or {}
    try:
        line = warehouse_service.add_manual_item(
            data.get("name"),
            data.get("quantity"),
            data.get("price_cents"),
            actor_user_id=g.current_user.id,
        )
    except Exception as exc:
        return json_error(exc, "add manual item")
    return jsonify(line), 201


@pos_bp.post("/checkout")
@require_auth
@require_permission("CREATE_SALE")
def checkout_route():
    """
    Body: {cart: [{product_id, quantity, price_cents, warehouse_id?}], warehouse_id,
           payment_method?, customer_id?, tax_cents?, discount_cents?, pending_bill_id?}
    """
    data = request.get_json(silent=True) or {}
    warehouse_id = data.get("warehouse_id")
    if isinstance(warehouse_id, bool) or not isinstance(warehouse_id, int):
        return {"error": "warehouse_id is required"}, 400
    try:
        tx = pos_service.checkout(
            data.get("cart"),
            warehouse_id,
            payment_method=data.get("payment_method") or "cash",
            customer_id=data.get("customer_id"),
            tax_cents=data.get("tax_cents"),
            discount_cents=data.get("discount_cents") or 0,
            pending_bill_id=data.get("pending_bill_id"),
            actor_user_id=g.current_user.id,
        )
    except Exception as exc:
        return json_error(exc, "complete checkout")
    return jsonify(tx.to_dict()), 201


@pos_bp.get("/transactions/<int:transaction_id>/receipt")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def receipt_route(transaction_id: int):
    try:
        return jsonify(pos_service.build_receipt(transaction_id))
    except Exception as exc:
        return json_error(exc, "build receipt")
