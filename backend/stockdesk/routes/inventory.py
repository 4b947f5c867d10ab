# Overview: Flask API routes for the stock ledger: movements, balances, reconcile.

from flask import Blueprint, request, g, jsonify

from ..services import stock_ledger_service
from ..decorators import require_auth, require_permission
from .errors import json_error


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/movements")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_movements_route():
    """Query params: product_id, warehouse_id, movement_type (in|out), limit (max 1000)."""
    limit = min(max(request.args.get("limit", 200, type=int), 1), 1000)
    try:
        movements = stock_ledger_service.list_movements(
            product_id=request.args.get("product_id", type=int),
            warehouse_id=request.args.get("warehouse_id", type=int),
            direction=request.args.get("movement_type") or None,
            limit=limit,
        )
    except Exception as exc:
        return json_error(exc, "list movements")
    return jsonify({"items": [m.to_dict() for m in movements], "count": len(movements)})


@inventory_bp.post("/movements")
@require_auth
@require_permission("RECORD_MOVEMENTS")
def record_movement_route():
    """
    Body: {product_id, warehouse_id, movement_type: "in"|"out", quantity,
           reference_number?, notes?}
    """
    data = request.get_json(silent=True) or {}
    try:
        movement = stock_ledger_service.record_movement(
            product_id=data.get("product_id"),
            warehouse_id=data.get("warehouse_id"),
            direction=data.get("movement_type"),
            quantity=data.get("quantity"),
            reference_number=data.get("reference_number"),
            notes=data.get("notes"),
            actor_user_id=g.current_user.id,
        )
    except Exception as exc:
        return json_error(exc, "record movement")
    return jsonify(movement.to_dict()), 201


@inventory_bp.delete("/movements/<int:movement_id>")
@require_auth
@require_permission("DELETE_MOVEMENTS")
def delete_movement_route(movement_id: int):
    try:
        stock_ledger_service.delete_movement(movement_id)
    except Exception as exc:
        return json_error(exc, "delete movement")
    return {"ok": True}, 200


@inventory_bp.get("/balances")
@require_auth
@require_permission("VIEW_INVENTORY")
def balances_route():
    """Per-warehouse balances for ?product_id=, or totals per product otherwise."""
    product_id = request.args.get("product_id", type=int)
    if product_id is not None:
        balances = stock_ledger_service.list_balances(product_id)
        return jsonify({
            "product_id": product_id,
            "total": sum(b.quantity for b in balances),
            "items": [b.to_dict() for b in balances],
        })
    totals = stock_ledger_service.total_stock_by_product()
    return jsonify({"totals": {str(pid): qty for pid, qty in totals.items()}})


@inventory_bp.post("/reconcile")
@require_auth
@require_permission("RECONCILE_INVENTORY")
def reconcile_route():
    try:
        drifted = stock_ledger_service.reconcile_balances()
    except Exception as exc:
        return json_error(exc, "reconcile balances")
    return jsonify({"corrected": drifted, "count": len(drifted)})
