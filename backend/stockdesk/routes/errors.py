# Overview: Maps service-layer exceptions to JSON error responses.

from flask import current_app, jsonify

from ..extensions import db
from ..services.permission_service import PermissionDeniedError
from ..services.stock_ledger_service import InsufficientStockError
from ..validation import ConflictError, NotFoundError, ValidationError


def json_error(exc: Exception, action: str = "process request"):
    """
    ValidationError -> 400, PermissionDeniedError -> 403, NotFoundError -> 404,
    ConflictError -> 409; anything else is logged and returned as 500.
    """
    db.session.rollback()
    if isinstance(exc, InsufficientStockError):
        return jsonify({
            "error": str(exc),
            "product_id": exc.product_id,
            "warehouse_id": exc.warehouse_id,
            "available": exc.available,
            "requested": exc.requested,
        }), 409
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, PermissionDeniedError):
        return jsonify({"error": str(exc)}), 403
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500
