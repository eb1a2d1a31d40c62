# backend/roomkeeper/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate
from .services.rate_limit_service import FixedWindowRateLimiter


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before db.init_app creates the engines
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    app.extensions["rate_limiter"] = FixedWindowRateLimiter()

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.state import state_bp  # Polling snapshot (runs the expiration sweep)
    from .routes.seats import seats_bp
    from .routes.lockers import lockers_bp
    from .routes.scan import scan_bp
    from .routes.products import products_bp
    from .routes.settings import settings_bp
    from .routes.logs import logs_bp
    from .routes.auth import auth_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(state_bp)
    app.register_blueprint(seats_bp)
    app.register_blueprint(lockers_bp)
    app.register_blueprint(scan_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(logs_bp)
    app.register_blueprint(auth_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config.get("CORS_ALLOWED_ORIGINS", ()):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
