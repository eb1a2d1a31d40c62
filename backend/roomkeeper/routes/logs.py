# Overview: Admin audit log viewer; prunes by retention, then lists newest events first.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_admin
from ..services import audit_service, settings_service


logs_bp = Blueprint("logs", __name__, url_prefix="/api/logs")


@logs_bp.get("")
@logs_bp.get("/")
@require_admin
def list_logs_route():
    """
    Recent audit events.

    Query params: search, type, limit (default 50, max 200).
    Payloads that are not valid JSON come back as raw text.
    """
    try:
        audit_service.prune_audit_events(settings_service.get_log_retention_days())

        events = audit_service.list_audit_events(
            search=(request.args.get("search") or "").strip() or None,
            event_type=request.args.get("type") or None,
            limit=request.args.get("limit", 50, type=int),
        )
        return jsonify({"events": [e.to_dict() for e in events], "count": len(events)})

    except Exception:
        current_app.logger.exception("Failed to fetch logs")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500
