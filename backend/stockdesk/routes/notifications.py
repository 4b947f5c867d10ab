# Overview: Flask API routes for derived notifications and their read state.

from flask import Blueprint, request, jsonify

from ..services import notification_service
from ..decorators import require_auth, require_permission


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
@require_permission("VIEW_NOTIFICATIONS")
def list_notifications_route():
    """Re-derives when the feed is older than the poll interval or ?refresh=1."""
    feed = notification_service.get_feed()
    if request.args.get("refresh") in ("1", "true") or feed.is_stale():
        feed.refresh()
    return jsonify(feed.summary())


@notifications_bp.post("/<notification_id>/read")
@require_auth
@require_permission("VIEW_NOTIFICATIONS")
def mark_read_route(notification_id: str):
    feed = notification_service.get_feed()
    if not feed.mark_read(notification_id):
        return jsonify({"error": "Notification not found"}), 404
    return jsonify({"ok": True, "unread_count": feed.unread_count})


@notifications_bp.post("/read-all")
@require_auth
@require_permission("VIEW_NOTIFICATIONS")
def mark_all_read_route():
    feed = notification_service.get_feed()
    marked = feed.mark_all_read()
    return jsonify({"ok": True, "marked": marked, "unread_count": feed.unread_count})


@notifications_bp.get("/low-stock")
@require_auth
@require_permission("VIEW_INVENTORY")
def low_stock_route():
    rows = notification_service.low_stock_products()
    return jsonify({"items": rows, "count": len(rows)})


@notifications_bp.get("/expiring")
@require_auth
@require_permission("VIEW_INVENTORY")
def expiring_route():
    rows = notification_service.expiring_products(window_days=request.args.get("days", type=int))
    return jsonify({"items": rows, "count": len(rows)})
