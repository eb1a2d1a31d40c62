# Overview: Service-layer operations for the audit log; append-only event writes and tolerant reads.

from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import or_

from ..extensions import db
from ..models import AuditEvent
from ..models.audit import ACTOR_ROLES, EVENT_TYPES
from roomkeeper.time_utils import utcnow, to_utc_z
"""
Audit log invariants

- Append-only: one event per resource-affecting operation.
- Events are written inside the same DB transaction as the state change they record.
- Payload is JSON text; readers fall back to the raw text when it does not parse.
- Rows are only ever removed by the retention prune.
"""

MAX_LIST_LIMIT = 200


def _json_default(value: Any):
    if isinstance(value, datetime):
        return to_utc_z(value)
    return str(value)


def append_audit_event(
    event_type: str,
    payload: dict[str, Any],
    actor_role: str,
    *,
    occurred_at: Optional[datetime] = None,
) -> AuditEvent:
    """
    Append-only audit event.

    Flushed so the id is assigned; committing is the caller's transaction's job.
    """
    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unknown audit event type: {event_type}")
    if actor_role not in ACTOR_ROLES:
        raise ValueError(f"Unknown actor role: {actor_role}")

    ev = AuditEvent(
        event_type=event_type,
        payload=json.dumps(payload, default=_json_default, sort_keys=True),
        actor_role=actor_role,
        created_at=occurred_at or utcnow(),
    )
    db.session.add(ev)
    db.session.flush()
    return ev


def decode_payload(raw: Optional[str]) -> Any:
    """Decode a stored payload; malformed text is returned as-is for display."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw


def list_audit_events(
    *,
    search: str | None = None,
    event_type: str | None = None,
    limit: int = 50,
) -> list[AuditEvent]:
    limit = max(1, min(limit, MAX_LIST_LIMIT))
    q = db.session.query(AuditEvent)
    if event_type:
        q = q.filter(AuditEvent.event_type == event_type)
    if search:
        pattern = f"%{search}%"
        q = q.filter(
            or_(
                AuditEvent.event_type.ilike(pattern),
                AuditEvent.actor_role.ilike(pattern),
                AuditEvent.payload.ilike(pattern),
            )
        )
    return q.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(limit).all()


def prune_audit_events(retention_days: int, *, now: Optional[datetime] = None) -> int:
    """
    Delete audit events older than retention_days.

    retention_days <= 0 keeps everything.
    """
    if retention_days <= 0:
        return 0
    cutoff = (now or utcnow()) - timedelta(days=retention_days)
    deleted = db.session.query(AuditEvent).filter(
        AuditEvent.created_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
