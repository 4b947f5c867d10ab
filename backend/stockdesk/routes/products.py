# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockdesk/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_INVENTORY permission
- Write operations require MANAGE_PRODUCTS permission
"""
from flask import Blueprint, Response, current_app, request, g, jsonify

from ..services import products_service, warehouse_service, csv_service
from ..services.barcode_service import BarcodeBurstDetector, detect_scans
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    NotFoundError,
    ValidationError,
)
from ..decorators import require_auth, require_permission
from .errors import json_error

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.PRODUCT_MUTABLE_FIELDS),
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_products():
    """
    Query params:
    - search: substring over name, SKU, barcode, description
    - category_id: int
    - active_only: "1" to hide inactive products
    - page / per_page: optional pagination
    """
    result = products_service.list_products(
        search=request.args.get("search"),
        category_id=request.args.get("category_id", type=int),
        include_inactive=request.args.get("active_only") not in ("1", "true"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return jsonify(result)


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except Exception as exc:
        return json_error(exc, "get product")
    return jsonify(products_service.product_to_dict(product))


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(patch=patch)
    except Exception as exc:
        return json_error(exc, "create product")

    return jsonify(products_service.product_to_dict(created, 0)), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except Exception as exc:
        return json_error(exc, "update product")

    return jsonify(products_service.product_to_dict(updated))


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id=product_id)
    except Exception as exc:
        return json_error(exc, "delete product")
    return {"ok": True}, 200


@products_bp.get("/barcode/<code>")
@require_auth
@require_permission("VIEW_INVENTORY")
def find_by_barcode_route(code: str):
    try:
        product = products_service.find_by_barcode(code)
    except Exception as exc:
        return json_error(exc, "look up barcode")
    return jsonify(products_service.product_to_dict(product))


@products_bp.post("/scan")
@require_auth
@require_permission("VIEW_INVENTORY")
def scan_route():
    """
    Body: {events: [[key, timestamp_ms], ...]}

    Replays a keystroke stream through the burst detector and resolves
    every scanned code. Unknown codes come back with product: null.
    """
    data = request.get_json(silent=True) or {}
    try:
        codes = detect_scans(data.get("events"), BarcodeBurstDetector.from_config(current_app.config))
    except Exception as exc:
        return json_error(exc, "detect scans")

    results = []
    for code in codes:
        try:
            product = products_service.product_to_dict(products_service.find_by_barcode(code))
        except NotFoundError:
            product = None
        results.append({"code": code, "product": product})
    return jsonify({"scans": results, "count": len(results)})


@products_bp.get("/<int:product_id>/stock")
@require_auth
@require_permission("VIEW_INVENTORY")
def product_stock_route(product_id: int):
    try:
        return jsonify(products_service.product_stock(product_id))
    except Exception as exc:
        return json_error(exc, "load product stock")


@products_bp.get("/<int:product_id>/classification")
@require_auth
@require_permission("VIEW_INVENTORY")
def classification_route(product_id: int):
    try:
        products_service.get_product(product_id)
    except Exception as exc:
        return json_error(exc, "classify product")
    return jsonify({"product_id": product_id, "classification": warehouse_service.classify_product(product_id)})


@products_bp.post("/<int:product_id>/move-to-regular")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def move_to_regular_route(product_id: int):
    """Body: {"category_id": int|null, "warehouse_id": int}"""
    data = request.get_json(silent=True) or {}
    warehouse_id = data.get("warehouse_id")
    if isinstance(warehouse_id, bool) or not isinstance(warehouse_id, int):
        return {"error": "warehouse_id is required"}, 400
    try:
        result = warehouse_service.move_to_regular(
            product_id,
            category_id=data.get("category_id"),
            warehouse_id=warehouse_id,
            actor_user_id=g.current_user.id,
        )
    except Exception as exc:
        return json_error(exc, "move product to regular stock")
    return jsonify(result)


@products_bp.get("/export")
@require_auth
@require_permission("VIEW_INVENTORY")
def export_products_route():
    return Response(
        csv_service.export_products_csv(),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=products.csv"},
    )


@products_bp.get("/import/template")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def import_template_route():
    return Response(
        csv_service.sample_csv(),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=products_template.csv"},
    )


@products_bp.post("/import")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def import_products_route():
    """Accepts a multipart "file" upload or a raw text/csv body."""
    upload = request.files.get("file")
    if upload is not None:
        raw = upload.read()
    else:
        raw = request.get_data()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        return {"error": "CSV must be UTF-8 encoded"}, 400

    try:
        result = csv_service.import_products_csv(text)
    except Exception as exc:
        return json_error(exc, "import products")
    return jsonify(result)
