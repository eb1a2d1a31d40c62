# Overview: Scan endpoints; resolve a scanned code, dispatch it against an intent, print labels.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import layout_service, session_lifecycle_service
from ..decorators import optional_admin, rate_limited
from ..validation import LifecycleError, ValidationError


scan_bp = Blueprint("scan", __name__, url_prefix="/api/scan")


@scan_bp.post("/resolve")
def resolve_route():
    """Decode a scanned code and return the resource it names."""
    try:
        data = request.get_json(silent=True) or {}
        code = data.get("code")
        if not code:
            raise ValidationError("Code is required")
        return jsonify(session_lifecycle_service.lookup_scan(code))

    except LifecycleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to resolve scan")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500


@scan_bp.post("/dispatch")
@rate_limited("checkin")
@optional_admin
def dispatch_route():
    """
    Resolve a scan and run the operation the kiosk intends.

    Request body:
    {
        "code": "SEAT:A1",
        "intent": "BEGIN_SEAT" | "END_SEAT" | "BEGIN_LOCKER" | "END_LOCKER",
        "user_tag": "1234",
        "product_id": 1,                 (BEGIN_SEAT)
        "linked_seat_session_id": 12,    (BEGIN_LOCKER, optional)
        "force": false                   (END_*, admin only)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        force = data.get("force") is True
        if force and not g.is_admin:
            return jsonify({"error": "Admin access required for force end", "code": "FORBIDDEN"}), 403

        result = session_lifecycle_service.dispatch_scan(
            data.get("code"),
            str(data.get("intent") or "").upper(),
            user_tag=data.get("user_tag"),
            product_id=data.get("product_id"),
            linked_seat_session_id=data.get("linked_seat_session_id"),
            force=force,
        )
        return jsonify(result.to_dict())

    except LifecycleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to dispatch scan")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500


@scan_bp.get("/labels")
def labels_route():
    """Printable codes for every seat and locker; ?format=LEGACY|APP1 overrides the setting."""
    try:
        labels = layout_service.build_labels(request.args.get("format"))
        return jsonify({"labels": labels, "count": len(labels)})

    except LifecycleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build labels")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500
