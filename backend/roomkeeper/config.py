# backend/roomkeeper/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/roomkeeper.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///roomkeeper.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Concurrent kiosk/admin writers wait on the SQLite write lock instead of failing fast
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {"timeout": float(os.environ.get("DB_BUSY_TIMEOUT", "30"))},
    } if SQLALCHEMY_DATABASE_URI.startswith("sqlite") else {}

    # Optimistic-lock retry bound for session transitions
    LOCK_RETRY_ATTEMPTS = 3
    LOCK_RETRY_BACKOFF_SECONDS = 0.1

    ADMIN_TOKEN_TTL_HOURS = int(os.environ.get("ADMIN_TOKEN_TTL_HOURS", "8"))
    # Used until an adminPasscode setting is stored
    DEFAULT_ADMIN_PASSCODE = os.environ.get("ADMIN_PASSCODE", "1234")

    # bucket -> (max requests, window seconds)
    RATE_LIMITS = {
        "default": (100, 60),
        "auth": (5, 15 * 60),
        "checkin": (30, 60),
    }
    RATE_LIMIT_ENABLED = True

    CORS_ALLOWED_ORIGINS = {
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    }
