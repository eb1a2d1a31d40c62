# backend/roomkeeper/routes/system.py
"""
System health endpoint.

Reports database connectivity and resource counts for kiosk deployment checks.
"""

import time
from flask import Blueprint, current_app, jsonify

from ..extensions import db
from ..models import Resource, UsageSession
from ..models.resources import KIND_LOCKER, KIND_SEAT
from ..models.sessions import SESSION_ACTIVE
from roomkeeper.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        seat_count = db.session.query(Resource).filter_by(kind=KIND_SEAT).count()
        locker_count = db.session.query(Resource).filter_by(kind=KIND_LOCKER).count()
        active_sessions = db.session.query(UsageSession).filter_by(status=SESSION_ACTIVE).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "seats": seat_count,
                "lockers": locker_count,
                "active_sessions": active_sessions,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }
    return jsonify(body), 200 if healthy else 503
