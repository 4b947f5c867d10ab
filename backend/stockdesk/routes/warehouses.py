# Overview: Flask API routes for warehouse CRUD and the Extra warehouse.

from flask import Blueprint, request, jsonify

from ..services import warehouse_service
from ..decorators import require_auth, require_permission
from .errors import json_error


warehouses_bp = Blueprint("warehouses", __name__, url_prefix="/api/warehouses")


@warehouses_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_warehouses_route():
    include_inactive = request.args.get("active_only") not in ("1", "true")
    rows = warehouse_service.list_warehouses(include_inactive=include_inactive)
    extra_name = warehouse_service.extra_warehouse_name()
    items = []
    for w in rows:
        data = w.to_dict()
        data["is_extra"] = w.name == extra_name
        items.append(data)
    return jsonify({"items": items, "count": len(items)})


@warehouses_bp.get("/extra")
@require_auth
@require_permission("VIEW_INVENTORY")
def extra_warehouse_route():
    try:
        warehouse = warehouse_service.get_or_create_extra_warehouse()
    except Exception as exc:
        return json_error(exc, "load Extra warehouse")
    return jsonify(warehouse.to_dict())


@warehouses_bp.post("")
@require_auth
@require_permission("MANAGE_WAREHOUSES")
def create_warehouse_route():
    data = request.get_json(silent=True) or {}
    try:
        warehouse = warehouse_service.create_warehouse(
            data.get("name"),
            location=data.get("location"),
            is_active=data.get("is_active", True),
        )
    except Exception as exc:
        return json_error(exc, "create warehouse")
    return jsonify(warehouse.to_dict()), 201


@warehouses_bp.put("/<int:warehouse_id>")
@require_auth
@require_permission("MANAGE_WAREHOUSES")
def update_warehouse_route(warehouse_id: int):
    data = request.get_json(silent=True) or {}
    try:
        warehouse = warehouse_service.update_warehouse(
            warehouse_id,
            name=data.get("name"),
            location=data.get("location"),
            is_active=data.get("is_active"),
        )
    except Exception as exc:
        return json_error(exc, "update warehouse")
    return jsonify(warehouse.to_dict())


@warehouses_bp.delete("/<int:warehouse_id>")
@require_auth
@require_permission("MANAGE_WAREHOUSES")
def delete_warehouse_route(warehouse_id: int):
    try:
        warehouse_service.delete_warehouse(warehouse_id)
    except Exception as exc:
        return json_error(exc, "delete warehouse")
    return {"ok": True}, 200
