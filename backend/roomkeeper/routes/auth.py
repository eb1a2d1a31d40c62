# Overview: Admin authentication endpoints (passcode login, logout, whoami).

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import auth_service
from ..decorators import optional_admin, rate_limited, require_admin
from ..validation import LifecycleError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
@rate_limited("auth")
def login_route():
    """
    Exchange the admin passcode for a bearer token.

    Request body: {"passcode": "1234"}
    """
    try:
        data = request.get_json(silent=True) or {}
        record, token = auth_service.login(
            data.get("passcode"),
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        return jsonify({"token": token, "admin": record.to_dict()})

    except LifecycleError as e:
        current_app.logger.warning("Admin login failed from %s", request.remote_addr)
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500


@auth_bp.post("/logout")
@require_admin
def logout_route():
    token = request.headers.get("Authorization", "").split(" ", 1)[1].strip()
    auth_service.revoke_token(token)
    return jsonify({"message": "Logged out"})


@auth_bp.get("/me")
@optional_admin
def me_route():
    if not g.is_admin:
        return jsonify({"role": "CUSTOMER", "is_admin": False})
    return jsonify({"role": "ADMIN", "is_admin": True, "admin": g.admin_token.to_dict()})
