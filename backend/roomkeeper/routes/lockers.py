# Overview: Flask API routes for locker sessions; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models.audit import ACTOR_ADMIN, ACTOR_CUSTOMER
from ..models.resources import KIND_LOCKER
from ..services import resource_store, session_lifecycle_service
from ..decorators import optional_admin, rate_limited
from ..validation import LifecycleError


lockers_bp = Blueprint("lockers", __name__, url_prefix="/api/lockers")


@lockers_bp.get("")
@lockers_bp.get("/")
def list_lockers_route():
    try:
        lockers = resource_store.list_resources(KIND_LOCKER)
        return jsonify({"lockers": [l.to_dict() for l in lockers], "count": len(lockers)})
    except Exception:
        current_app.logger.exception("Failed to list lockers")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500


@lockers_bp.post("/assign")
@rate_limited("checkin")
@optional_admin
def assign_route():
    """
    Assign a locker.

    Request body:
    {
        "locker_id": "005",
        "user_tag": "1234",
        "linked_seat_session_id": 12   (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        result = session_lifecycle_service.begin_locker_session(
            data.get("locker_id"),
            data.get("user_tag"),
            linked_seat_session_id=data.get("linked_seat_session_id"),
            actor_role=ACTOR_ADMIN if g.is_admin else ACTOR_CUSTOMER,
        )
        return jsonify(result.to_dict()), 201

    except LifecycleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to assign locker")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500


@lockers_bp.post("/release")
@rate_limited("checkin")
@optional_admin
def release_route():
    try:
        data = request.get_json(silent=True) or {}
        force = data.get("force") is True
        if force and not g.is_admin:
            return jsonify({"error": "Admin access required for force release", "code": "FORBIDDEN"}), 403

        result = session_lifecycle_service.end_session(
            KIND_LOCKER,
            data.get("locker_id"),
            data.get("user_tag"),
            force=force,
        )
        return jsonify(result.to_dict())

    except LifecycleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to release locker")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500
