from __future__ import annotations

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_permission
from ..services import settings_service
from .errors import json_error


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings():
    """Every registered setting with its effective value (stored or default)."""
    return jsonify(settings_service.get_all_settings())


@settings_bp.put("")
@require_auth
@require_permission("MANAGE_SETTINGS")
def update_settings():
    """Body: {key: value, ...}; all keys are validated before anything is written."""
    try:
        data = settings_service.update_settings(request.get_json(silent=True) or {}, actor_user_id=g.current_user.id)
    except Exception as exc:
        return json_error(exc, "update settings")
    return jsonify(data)


@settings_bp.get("/<key>")
@require_auth
def get_setting(key: str):
    try:
        return jsonify({"key": key, "value": settings_service.get_setting(key)})
    except Exception as exc:
        return json_error(exc, "read setting")


@settings_bp.put("/<key>")
@require_auth
@require_permission("MANAGE_SETTINGS")
def set_setting(key: str):
    payload = request.get_json(silent=True) or {}
    if "value" not in payload:
        return jsonify({"error": "value is required"}), 400
    try:
        value = settings_service.set_setting(key, payload["value"], actor_user_id=g.current_user.id)
    except Exception as exc:
        return json_error(exc, "update setting")
    return jsonify({"key": key, "value": value})
