# Overview: Flask API routes for seat sessions; parses input and returns JSON responses.

# backend/roomkeeper/routes/seats.py
"""
Seat API Routes

DESIGN:
- Check-in and self-service checkout are open to the kiosk (rate limited)
- Force checkout requires an admin token
- Extend is admin only

Errors are returned as {"error", "code", "reason"} with the error's HTTP status.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models.audit import ACTOR_ADMIN, ACTOR_CUSTOMER
from ..models.resources import KIND_SEAT
from ..services import resource_store, session_lifecycle_service
from ..decorators import optional_admin, rate_limited, require_admin
from ..validation import LifecycleError


seats_bp = Blueprint("seats", __name__, url_prefix="/api/seats")


@seats_bp.get("")
@seats_bp.get("/")
def list_seats_route():
    try:
        seats = resource_store.list_resources(KIND_SEAT)
        return jsonify({"seats": [s.to_dict() for s in seats], "count": len(seats)})
    except Exception:
        current_app.logger.exception("Failed to list seats")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500


@seats_bp.post("/checkin")
@rate_limited("checkin")
@optional_admin
def checkin_route():
    """
    Check in to a seat.

    Request body:
    {
        "seat_id": "A1",
        "product_id": 1,
        "user_tag": "1234"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        result = session_lifecycle_service.begin_seat_session(
            data.get("seat_id"),
            data.get("product_id"),
            data.get("user_tag"),
            actor_role=ACTOR_ADMIN if g.is_admin else ACTOR_CUSTOMER,
        )
        return jsonify(result.to_dict()), 201

    except LifecycleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to check in")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500


@seats_bp.post("/checkout")
@rate_limited("checkin")
@optional_admin
def checkout_route():
    """
    Check out of a seat.

    Request body:
    {
        "seat_id": "A1",
        "user_tag": "1234",   (not needed with force)
        "force": false        (admin only)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        force = data.get("force") is True
        if force and not g.is_admin:
            return jsonify({"error": "Admin access required for force checkout", "code": "FORBIDDEN"}), 403

        result = session_lifecycle_service.end_session(
            KIND_SEAT,
            data.get("seat_id"),
            data.get("user_tag"),
            force=force,
        )
        return jsonify(result.to_dict())

    except LifecycleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to check out")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500


@seats_bp.post("/extend")
@require_admin
def extend_route():
    """
    Extend a seat session.

    Request body:
    {
        "seat_id": "A1",
        "add_minutes": 30,    (or)
        "product_id": 2
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        result = session_lifecycle_service.extend_session(
            data.get("seat_id"),
            minutes=data.get("add_minutes"),
            product_id=data.get("product_id"),
            privileged=g.is_admin,
        )
        return jsonify(result.to_dict())

    except LifecycleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to extend session")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500
