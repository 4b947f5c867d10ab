# Overview: Flask API routes for sales reports and the dashboard.

from flask import Blueprint, request, jsonify

from ..services import reporting_service
from ..decorators import require_auth, require_permission
from .errors import json_error


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _range_args() -> dict:
    """?period=today|yesterday|this_week|this_month|last_30_days, or ?start=&end= (YYYY-MM-DD)."""
    return {
        "period": request.args.get("period") or None,
        "start": request.args.get("start") or None,
        "end": request.args.get("end") or None,
    }


@reports_bp.get("/sales-summary")
@require_auth
@require_permission("VIEW_REPORTS")
def sales_summary_route():
    try:
        report = reporting_service.sales_summary(**_range_args())
    except Exception as exc:
        return json_error(exc, "build sales summary")
    return jsonify(report)


@reports_bp.get("/daily-sales")
@require_auth
@require_permission("VIEW_REPORTS")
def daily_sales_route():
    try:
        report = reporting_service.daily_sales(**_range_args())
    except Exception as exc:
        return json_error(exc, "build daily sales report")
    return jsonify(report)


@reports_bp.get("/top-products")
@require_auth
@require_permission("VIEW_REPORTS")
def top_products_route():
    try:
        report = reporting_service.top_products(**_range_args(), limit=request.args.get("limit", 10, type=int))
    except Exception as exc:
        return json_error(exc, "build top products report")
    return jsonify(report)


@reports_bp.get("/dashboard")
@require_auth
@require_permission("VIEW_REPORTS")
def dashboard_route():
    return jsonify(reporting_service.dashboard_overview())


@reports_bp.get("/activity")
@require_auth
@require_permission("VIEW_REPORTS")
def activity_route():
    items = reporting_service.recent_activity(limit=request.args.get("limit", 10, type=int))
    return jsonify({"items": items, "count": len(items)})
