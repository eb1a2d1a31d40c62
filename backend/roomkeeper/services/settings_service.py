from __future__ import annotations

import re
import secrets
from typing import Any

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import AppSetting
from ..validation import ValidationError
from .scan_codes import CODE_FORMATS, FORMAT_LEGACY


POLICY_MANUAL = "MANUAL"
POLICY_AUTO = "AUTO"
EXPIRATION_POLICIES = (POLICY_MANUAL, POLICY_AUTO)

SCAN_MODES = ("AUTO", "HID_ONLY", "WEB_ONLY")

KEY_QR_FORMAT = "qrFormat"
KEY_EXPIRATION = "expirationHandling"
KEY_CHECKOUT_CONFIRM = "checkoutConfirmRequired"
KEY_SCAN_MODE = "scanMode"
KEY_LOG_RETENTION = "logRetentionDays"
KEY_ADMIN_PASSCODE = "adminPasscode"

DEFAULTS = {
    KEY_QR_FORMAT: FORMAT_LEGACY,
    KEY_EXPIRATION: POLICY_MANUAL,
    KEY_CHECKOUT_CONFIRM: "true",
    KEY_SCAN_MODE: "AUTO",
    KEY_LOG_RETENTION: "90",
}

MAX_LOG_RETENTION_DAYS = 365
PASSCODE_RE = re.compile(r"[0-9]{4,8}")


def get_setting(key: str, fallback: str | None = None) -> str | None:
    row = db.session.get(AppSetting, key)
    if row is None:
        return DEFAULTS.get(key, fallback) if fallback is None else fallback
    return row.value


def _set_setting(key: str, value: str) -> None:
    row = db.session.get(AppSetting, key)
    if row is None:
        db.session.add(AppSetting(key=key, value=value))
    else:
        row.value = value


def get_settings() -> dict:
    """Public settings view; the admin passcode is never returned."""
    return {
        KEY_QR_FORMAT: get_qr_format(),
        KEY_EXPIRATION: get_expiration_policy(),
        KEY_CHECKOUT_CONFIRM: get_setting(KEY_CHECKOUT_CONFIRM) == "true",
        KEY_SCAN_MODE: get_setting(KEY_SCAN_MODE),
        KEY_LOG_RETENTION: get_log_retention_days(),
    }


def get_expiration_policy() -> str:
    value = (get_setting(KEY_EXPIRATION) or POLICY_MANUAL).upper()
    return value if value in EXPIRATION_POLICIES else POLICY_MANUAL


def get_qr_format() -> str:
    value = (get_setting(KEY_QR_FORMAT) or FORMAT_LEGACY).upper()
    return value if value in CODE_FORMATS else FORMAT_LEGACY


def get_log_retention_days() -> int:
    try:
        return int(get_setting(KEY_LOG_RETENTION))
    except (TypeError, ValueError):
        return int(DEFAULTS[KEY_LOG_RETENTION])


def _validate_patch(patch: dict[str, Any]) -> dict[str, str]:
    cleaned: dict[str, str] = {}

    if patch.get(KEY_QR_FORMAT) is not None:
        value = str(patch[KEY_QR_FORMAT]).upper()
        if value not in CODE_FORMATS:
            raise ValidationError(f"Invalid {KEY_QR_FORMAT}")
        cleaned[KEY_QR_FORMAT] = value

    if patch.get(KEY_EXPIRATION) is not None:
        value = str(patch[KEY_EXPIRATION]).upper()
        if value not in EXPIRATION_POLICIES:
            raise ValidationError(f"Invalid {KEY_EXPIRATION}")
        cleaned[KEY_EXPIRATION] = value

    if patch.get(KEY_CHECKOUT_CONFIRM) is not None:
        if not isinstance(patch[KEY_CHECKOUT_CONFIRM], bool):
            raise ValidationError(f"{KEY_CHECKOUT_CONFIRM} must be a boolean")
        cleaned[KEY_CHECKOUT_CONFIRM] = "true" if patch[KEY_CHECKOUT_CONFIRM] else "false"

    if patch.get(KEY_SCAN_MODE) is not None:
        value = str(patch[KEY_SCAN_MODE]).upper()
        if value not in SCAN_MODES:
            raise ValidationError(f"Invalid {KEY_SCAN_MODE}")
        cleaned[KEY_SCAN_MODE] = value

    if patch.get(KEY_LOG_RETENTION) is not None:
        value = patch[KEY_LOG_RETENTION]
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"Invalid {KEY_LOG_RETENTION}")
        if value < 0 or value > MAX_LOG_RETENTION_DAYS:
            raise ValidationError(f"{KEY_LOG_RETENTION} must be between 0 and {MAX_LOG_RETENTION_DAYS}")
        cleaned[KEY_LOG_RETENTION] = str(value)

    if patch.get(KEY_ADMIN_PASSCODE) is not None:
        value = str(patch[KEY_ADMIN_PASSCODE])
        if not PASSCODE_RE.fullmatch(value):
            raise ValidationError("Passcode must be 4-8 digits")
        cleaned[KEY_ADMIN_PASSCODE] = hash_passcode(value)

    return cleaned


def update_settings(patch: dict[str, Any]) -> dict:
    """
    Validate and persist a partial settings update.

    All values are validated before anything is written.
    """
    cleaned = _validate_patch(patch or {})
    for key, value in cleaned.items():
        _set_setting(key, value)
    db.session.commit()
    return get_settings()


def hash_passcode(passcode: str) -> str:
    """bcrypt with cost factor 12; only the hash is stored in app_settings."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(passcode.encode("utf-8"), salt).decode("utf-8")


def verify_admin_passcode(passcode: Any) -> bool:
    """
    Check the admin passcode against the stored bcrypt hash.

    Until a passcode is set through settings, DEFAULT_ADMIN_PASSCODE from
    config is the passcode.
    """
    if not isinstance(passcode, str):
        return False

    stored = get_setting(KEY_ADMIN_PASSCODE)
    if stored is None:
        default = str(current_app.config.get("DEFAULT_ADMIN_PASSCODE", "1234"))
        return secrets.compare_digest(passcode.encode("utf-8"), default.encode("utf-8"))

    try:
        return bcrypt.checkpw(passcode.encode("utf-8"), stored.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash
        return False
