# Overview: Generic list/search/CRUD/bulk-delete routes for simple back-office tables.

"""
One set of endpoints per registered CrudResource:

    GET    /api/<slug>?search=&page=&page_size=
    GET    /api/<slug>/<id>
    POST   /api/<slug>
    PUT    /api/<slug>/<id>
    DELETE /api/<slug>/<id>
    POST   /api/<slug>/bulk-delete   {"ids": [...]}
"""

from flask import Blueprint, request, g, jsonify

from ..services.crud_service import RESOURCES
from ..decorators import require_auth, require_permission
from .errors import json_error


resources_bp = Blueprint("resources", __name__, url_prefix="/api")

# resource name -> (url slug, view permission, manage permission)
RESOURCE_ROUTES = {
    "customers": ("customers", "VIEW_CUSTOMERS", "MANAGE_CUSTOMERS"),
    "suppliers": ("suppliers", "VIEW_INVENTORY", "MANAGE_PRODUCTS"),
    "categories": ("categories", "VIEW_INVENTORY", "MANAGE_PRODUCTS"),
    "expense_categories": ("expense-categories", "VIEW_EXPENSES", "MANAGE_EXPENSES"),
    "expenses": ("expenses", "VIEW_EXPENSES", "MANAGE_EXPENSES"),
    "budgets": ("budgets", "VIEW_EXPENSES", "MANAGE_EXPENSES"),
    "employees": ("employees", "VIEW_EMPLOYEES", "MANAGE_EMPLOYEES"),
    "transactions": ("transactions", "VIEW_TRANSACTIONS", "VIEW_TRANSACTIONS"),
    "support_tickets": ("support-tickets", "VIEW_CUSTOMERS", "MANAGE_TICKETS"),
}


def _register(name: str, slug: str, view_perm: str, manage_perm: str) -> None:
    resource = RESOURCES[name]

    def list_view():
        filters = {key: request.args.get(key) for key in resource.extra_filters}
        for key, value in filters.items():
            if value is not None and value.isdigit():
                filters[key] = int(value)
        return jsonify(resource.list(
            search=request.args.get("search"),
            page=request.args.get("page", 1, type=int),
            page_size=request.args.get("page_size", type=int) or request.args.get("per_page", type=int),
            filters=filters,
        ))

    def get_view(row_id: int):
        try:
            return jsonify(resource.get(row_id).to_dict())
        except Exception as exc:
            return json_error(exc, f"get {name}")

    def create_view():
        try:
            row = resource.create(request.get_json(silent=True) or {}, actor_user_id=g.current_user.id)
        except Exception as exc:
            return json_error(exc, f"create {name}")
        return jsonify(row.to_dict()), 201

    def update_view(row_id: int):
        try:
            row = resource.update(row_id, request.get_json(silent=True) or {})
        except Exception as exc:
            return json_error(exc, f"update {name}")
        return jsonify(row.to_dict())

    def delete_view(row_id: int):
        try:
            resource.delete(row_id)
        except Exception as exc:
            return json_error(exc, f"delete {name}")
        return {"ok": True}, 200

    def bulk_delete_view():
        ids = (request.get_json(silent=True) or {}).get("ids")
        try:
            deleted = resource.bulk_delete(ids)
        except Exception as exc:
            return json_error(exc, f"bulk delete {name}")
        return jsonify({"ok": True, "deleted": deleted})

    def guarded(view, perm):
        return require_auth(require_permission(perm)(view))

    base = f"/{slug}"
    resources_bp.add_url_rule(base, f"{name}_list", guarded(list_view, view_perm), methods=["GET"])
    resources_bp.add_url_rule(f"{base}/<int:row_id>", f"{name}_get", guarded(get_view, view_perm), methods=["GET"])
    if resource.read_only:
        return
    resources_bp.add_url_rule(base, f"{name}_create", guarded(create_view, manage_perm), methods=["POST"])
    resources_bp.add_url_rule(f"{base}/<int:row_id>", f"{name}_update", guarded(update_view, manage_perm),
                              methods=["PUT", "PATCH"])
    resources_bp.add_url_rule(f"{base}/<int:row_id>", f"{name}_delete", guarded(delete_view, manage_perm),
                              methods=["DELETE"])
    resources_bp.add_url_rule(f"{base}/bulk-delete", f"{name}_bulk_delete",
                              guarded(bulk_delete_view, manage_perm), methods=["POST"])


for _name, (_slug, _view, _manage) in RESOURCE_ROUTES.items():
    _register(_name, _slug, _view, _manage)
