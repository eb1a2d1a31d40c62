from __future__ import annotations

from ..extensions import db
from roomkeeper.time_utils import to_utc_z, utcnow


EVENT_CHECK_IN = "CHECK_IN"
EVENT_CHECK_OUT = "CHECK_OUT"
EVENT_EXTEND = "EXTEND"
EVENT_FORCE_END = "FORCE_END"
EVENT_ASSIGN = "ASSIGN"
EVENT_RELEASE = "RELEASE"
EVENT_TYPES = (
    EVENT_CHECK_IN,
    EVENT_CHECK_OUT,
    EVENT_EXTEND,
    EVENT_FORCE_END,
    EVENT_ASSIGN,
    EVENT_RELEASE,
)

ACTOR_CUSTOMER = "CUSTOMER"
ACTOR_ADMIN = "ADMIN"
ACTOR_SYSTEM = "SYSTEM"
ACTOR_ROLES = (ACTOR_CUSTOMER, ACTOR_ADMIN, ACTOR_SYSTEM)


class AuditEvent(db.Model):
    """
    Audit trail for seat/locker session transitions.

    IMMUTABLE: Never update. Rows are only removed by the retention prune.
    Payload is free-form JSON text; readers must tolerate malformed payloads.
    """
    __tablename__ = "audit_events"
    __table_args__ = (
        db.Index("ix_audit_events_type_created", "event_type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(16), nullable=False)
    payload = db.Column(db.Text, nullable=False, default="{}")
    actor_role = db.Column(db.String(16), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        from ..services.audit_service import decode_payload

        return {
            "id": self.id,
            "type": self.event_type,
            "payload": decode_payload(self.payload),
            "actor_role": self.actor_role,
            "created_at": to_utc_z(self.created_at),
        }
