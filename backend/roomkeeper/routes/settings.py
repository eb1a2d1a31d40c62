from __future__ import annotations

from flask import Blueprint, jsonify, request, current_app

from ..extensions import db
from ..decorators import require_admin
from ..services import layout_service, settings_service
from ..validation import LifecycleError


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@settings_bp.get("/")
def get_settings_route():
    try:
        return jsonify({"settings": settings_service.get_settings()})
    except Exception:
        current_app.logger.exception("Failed to load settings")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500


@settings_bp.patch("")
@settings_bp.patch("/")
@require_admin
def update_settings_route():
    try:
        payload = request.get_json(silent=True) or {}
        return jsonify({"settings": settings_service.update_settings(payload)})
    except LifecycleError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500


@settings_bp.post("/layout")
@require_admin
def apply_layout_route():
    """
    Replace the seat grid and lockers. DESTRUCTIVE: sessions and logs are wiped.

    Request body: {"row_count": 4, "col_count": 4, "locker_count": 20}
    """
    try:
        payload = request.get_json(silent=True) or {}
        result = layout_service.apply_layout(
            payload.get("row_count"),
            payload.get("col_count"),
            payload.get("locker_count", 0),
        )
        return jsonify(result)
    except LifecycleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to apply layout")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500
