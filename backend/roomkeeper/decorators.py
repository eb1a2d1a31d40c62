# Overview: Request decorators for API routes (admin auth, rate limiting).

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import auth_service
from .validation import RateLimitError


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def _load_admin() -> None:
    token = _bearer_token()
    g.admin_token = auth_service.validate_token(token) if token else None
    g.is_admin = g.admin_token is not None


def require_admin(f):
    """
    Require a valid admin bearer token.

    Sets g.admin_token and g.is_admin. Returns 401 if the Authorization
    header is missing, or the token is unknown, expired or revoked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if _bearer_token() is None:
            return jsonify({"error": "Authentication required", "code": "UNAUTHORIZED"}), 401
        _load_admin()
        if not g.is_admin:
            return jsonify({"error": "Invalid or expired token", "code": "UNAUTHORIZED"}), 401
        return f(*args, **kwargs)

    return decorated_function


def optional_admin(f):
    """Resolve admin status when a token is sent; kiosk requests pass through as non-admin."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        _load_admin()
        return f(*args, **kwargs)

    return decorated_function


def _client_key() -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr or "unknown"


def rate_limited(bucket: str = "default"):
    """
    Count the request against a per-client fixed window.

    Limits come from RATE_LIMITS[bucket]; the limiter itself is the
    app.extensions["rate_limiter"] instance. Over the limit returns 429
    with a Retry-After header.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_app.config.get("RATE_LIMIT_ENABLED", True):
                return f(*args, **kwargs)

            limits = current_app.config["RATE_LIMITS"]
            max_requests, window_seconds = limits.get(bucket, limits["default"])
            limiter = current_app.extensions["rate_limiter"]
            result = limiter.hit(f"{bucket}:{_client_key()}", max_requests, window_seconds)

            if not result.allowed:
                current_app.logger.warning(
                    "Rate limit exceeded for %s on %s", _client_key(), request.path
                )
                err = RateLimitError(result.retry_after_seconds)
                response = jsonify(err.to_dict())
                response.status_code = err.status_code
                response.headers["Retry-After"] = str(result.retry_after_seconds)
                return response

            return f(*args, **kwargs)

        return decorated_function
    return decorator
