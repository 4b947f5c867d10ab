# Overview: Flask API routes for user, role and permission administration.

from flask import Blueprint, request, jsonify

from ..extensions import db
from ..models import Permission, Role, User
from ..services import auth_service, permission_service
from ..decorators import require_auth, require_permission
from .errors import json_error


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/users")
@require_auth
@require_permission("VIEW_USERS")
def list_users_route():
    users = db.session.query(User).order_by(User.username).all()
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)})


@admin_bp.post("/users")
@require_auth
@require_permission("CREATE_USER")
def create_user_route():
    """Email and password are set here only; update does not change them."""
    data = request.get_json(silent=True) or {}
    roles = data.get("roles")
    if roles is None and data.get("role"):
        roles = [data["role"]]
    try:
        user = auth_service.create_user(
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password") or "",
            full_name=data.get("full_name"),
            roles=roles or [],
        )
    except Exception as exc:
        return json_error(exc, "create user")
    return jsonify(user.to_dict()), 201


@admin_bp.put("/users/<int:user_id>")
@require_auth
@require_permission("EDIT_USER")
def update_user_route(user_id: int):
    data = request.get_json(silent=True) or {}
    forbidden = sorted({"email", "password"} & set(data))
    if forbidden:
        return jsonify({"error": f"Field not allowed: {', '.join(forbidden)}"}), 400
    try:
        user = auth_service.update_user(
            user_id,
            username=data.get("username"),
            full_name=data.get("full_name"),
            is_active=data.get("is_active"),
        )
    except Exception as exc:
        return json_error(exc, "update user")
    return jsonify(user.to_dict())


@admin_bp.post("/users/<int:user_id>/deactivate")
@require_auth
@require_permission("EDIT_USER")
def deactivate_user_route(user_id: int):
    try:
        user = auth_service.deactivate_user(user_id)
    except Exception as exc:
        return json_error(exc, "deactivate user")
    return jsonify(user.to_dict())


@admin_bp.post("/users/<int:user_id>/roles")
@require_auth
@require_permission("MANAGE_PERMISSIONS")
def assign_role_route(user_id: int):
    role_name = (request.get_json(silent=True) or {}).get("role")
    if not role_name:
        return jsonify({"error": "role is required"}), 400
    try:
        auth_service.assign_role(user_id, role_name)
    except Exception as exc:
        return json_error(exc, "assign role")
    return jsonify({"user_id": user_id, "roles": permission_service.get_user_role_names(user_id)})


@admin_bp.delete("/users/<int:user_id>/roles/<role_name>")
@require_auth
@require_permission("MANAGE_PERMISSIONS")
def remove_role_route(user_id: int, role_name: str):
    try:
        auth_service.remove_role(user_id, role_name)
    except Exception as exc:
        return json_error(exc, "remove role")
    return jsonify({"user_id": user_id, "roles": permission_service.get_user_role_names(user_id)})


@admin_bp.get("/roles")
@require_auth
@require_permission("VIEW_USERS")
def list_roles_route():
    roles = db.session.query(Role).order_by(Role.name).all()
    items = []
    for role in roles:
        data = role.to_dict()
        data["permissions"] = permission_service.get_role_permissions(role.name)
        items.append(data)
    return jsonify({"items": items, "count": len(items)})


@admin_bp.get("/permissions")
@require_auth
@require_permission("VIEW_USERS")
def list_permissions_route():
    perms = db.session.query(Permission).order_by(Permission.category, Permission.code).all()
    by_category: dict[str, list[str]] = {}
    for p in perms:
        by_category.setdefault(p.category, []).append(p.code)
    return jsonify({"items": [p.to_dict() for p in perms], "by_category": by_category})


@admin_bp.post("/roles/<role_name>/permissions")
@require_auth
@require_permission("MANAGE_PERMISSIONS")
def grant_permission_route(role_name: str):
    code = (request.get_json(silent=True) or {}).get("permission_code")
    if not code:
        return jsonify({"error": "permission_code is required"}), 400
    try:
        permission_service.grant_permission_to_role(role_name, code)
    except Exception as exc:
        return json_error(exc, "grant permission")
    return jsonify({"role": role_name, "permissions": permission_service.get_role_permissions(role_name)})


@admin_bp.delete("/roles/<role_name>/permissions/<code>")
@require_auth
@require_permission("MANAGE_PERMISSIONS")
def revoke_permission_route(role_name: str, code: str):
    try:
        permission_service.revoke_permission_from_role(role_name, code)
    except Exception as exc:
        return json_error(exc, "revoke permission")
    return jsonify({"role": role_name, "permissions": permission_service.get_role_permissions(role_name)})
