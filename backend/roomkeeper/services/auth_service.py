# Overview: Admin passcode login and bearer-token lifecycle.

"""
Admin Token Service

WHY: Force-ending sessions, extending deadlines and changing settings are
admin-only. The admin console trades the shared passcode for a bearer token.

SECURITY NOTES:
- Tokens are 32 random bytes (64 hex chars) from secrets.token_hex
- Only the SHA-256 hash is stored; the plaintext is returned once at login
- Tokens expire after ADMIN_TOKEN_TTL_HOURS and can be revoked on logout
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app

from ..extensions import db
from ..models import AdminToken
from ..validation import UnauthorizedError
from .settings_service import verify_admin_passcode
from roomkeeper.time_utils import utcnow


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is enough here: tokens are already high-entropy."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def login(
    passcode,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
    now: Optional[datetime] = None,
) -> tuple[AdminToken, str]:
    """
    Exchange the admin passcode for a token.

    Returns (token_record, plaintext_token).

    Raises UnauthorizedError on a wrong passcode.
    """
    if not verify_admin_passcode(passcode):
        raise UnauthorizedError("Invalid passcode")

    ts = now or utcnow()
    ttl_hours = current_app.config.get("ADMIN_TOKEN_TTL_HOURS", 8)
    plaintext = generate_token()

    record = AdminToken(
        token_hash=hash_token(plaintext),
        created_at=ts,
        expires_at=ts + timedelta(hours=ttl_hours),
        user_agent=user_agent,
        ip_address=ip_address,
    )
    db.session.add(record)
    db.session.commit()
    return record, plaintext


def validate_token(token: str | None, *, now: Optional[datetime] = None) -> AdminToken | None:
    """Return the token record when the token is known, unrevoked and unexpired."""
    if not token:
        return None
    record = db.session.query(AdminToken).filter_by(token_hash=hash_token(token)).first()
    if record is None or record.revoked_at is not None:
        return None
    if record.expires_at <= (now or utcnow()):
        return None
    return record


def revoke_token(token: str | None) -> bool:
    record = validate_token(token)
    if record is None:
        return False
    record.revoked_at = utcnow()
    db.session.commit()
    return True
