# Overview: Polling state endpoint; sweeps overdue sessions, then returns the full kiosk snapshot.

from flask import Blueprint, jsonify, current_app

from ..extensions import db
from ..models.resources import KIND_LOCKER, KIND_SEAT
from ..services import expiration_service, resource_store, settings_service
from ..validation import LifecycleError
from roomkeeper.time_utils import utcnow, to_utc_z


state_bp = Blueprint("state", __name__, url_prefix="/api")


@state_bp.get("/state")
def get_state():
    """
    Snapshot of seats, lockers, products and active sessions.

    The expiration sweep runs first so overdue sessions are already
    flagged or ended in what is returned. A failing sweep is logged and
    the snapshot is still served.
    """
    try:
        sweep = expiration_service.sweep_expired_sessions()
        sweep_summary = sweep.to_dict()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Expiration sweep failed during state poll")
        sweep_summary = None

    try:
        seats = resource_store.list_resources(KIND_SEAT)
        lockers = resource_store.list_resources(KIND_LOCKER)
        products = resource_store.list_products()
        sessions = resource_store.list_active_sessions()

        return jsonify({
            "seats": [s.to_dict() for s in seats],
            "lockers": [l.to_dict() for l in lockers],
            "products": [p.to_dict() for p in products],
            "active_sessions": [s.to_dict() for s in sessions],
            "settings": settings_service.get_settings(),
            "sweep": sweep_summary,
            "server_time": to_utc_z(utcnow()),
        })
    except LifecycleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load state")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500
