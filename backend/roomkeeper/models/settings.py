from __future__ import annotations

from ..extensions import db


class AppSetting(db.Model):
    """Key/value runtime settings (QR format, expiration policy, retention...)."""
    __tablename__ = "app_settings"

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
