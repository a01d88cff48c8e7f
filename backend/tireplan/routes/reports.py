# backend/tireplan/routes/reports.py
"""
Dashboard reports.

Revenue figures (monthly, daily) are admin-mode only; the day board is
open to anyone working a branch, with purchase prices hidden outside admin
mode.
"""

from datetime import timedelta

from flask import Blueprint, request, jsonify, g

from ..models import ROLE_STORE_ADMIN
from ..services import report_service
from ..services.report_service import ReportError
from ..services.scope_service import ScopeError, resolve_store_filter
from ..decorators import require_auth, require_app, require_store_admin


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/monthly")
@require_auth
@require_store_admin
def monthly_report_route():
    """Query params: month (YYYY-MM, defaults to the current business month), store_id."""
    try:
        store_id = resolve_store_filter(g.current_user, g.store_id, request.args.get("store_id"))
        month = request.args.get("month") or report_service.business_today().strftime("%Y-%m")
        report = report_service.monthly_summary(g.current_user, month, store_id)
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(report), 200


@reports_bp.get("/daily")
@require_auth
@require_store_admin
def daily_report_route():
    """Query params: start (YYYY-MM-DD, defaults to six days ago), days (default 7), store_id."""
    try:
        store_id = resolve_store_filter(g.current_user, g.store_id, request.args.get("store_id"))
        start = request.args.get("start") or report_service.business_today() - timedelta(days=6)
        rows = report_service.daily_summary(g.current_user, start, request.args.get("days", 7), store_id)
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": rows, "count": len(rows)}), 200


@reports_bp.get("/board")
@require_auth
@require_app
def day_board_route():
    """Query params: date (YYYY-MM-DD, defaults to today), store_id."""
    try:
        store_id = resolve_store_filter(g.current_user, g.store_id, request.args.get("store_id"))
        day = request.args.get("date") or report_service.business_today()
        board = report_service.day_board(
            g.current_user, day, store_id,
            include_purchase_price=g.session_context.effective_role == ROLE_STORE_ADMIN,
        )
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(board), 200
