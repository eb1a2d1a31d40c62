from __future__ import annotations

from ..extensions import db
from roomkeeper.time_utils import to_utc_z


SESSION_ACTIVE = "ACTIVE"
SESSION_ENDED = "ENDED"
SESSION_EXPIRED = "EXPIRED"

ENDED_CHECKOUT = "CHECKOUT"
ENDED_RELEASED = "RELEASED"
ENDED_FORCE_END = "FORCE_END"
ENDED_EXPIRED = "EXPIRED"


class UsageSession(db.Model):
    """
    One usage period binding a user tag to a resource.

    LIFECYCLE:
    - ACTIVE: created when the resource goes AVAILABLE -> OCCUPIED
    - EXPIRED: deadline passed under the MANUAL policy, still attached
    - ENDED: checked out, released, force-ended or auto-expired

    At most one ACTIVE session references a resource at any time; the
    resource's current_session_id plus its version check enforce this.
    """
    __tablename__ = "usage_sessions"
    __table_args__ = (
        db.Index("ix_usage_sessions_status_end", "status", "end_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    resource_id = db.Column(db.Integer, db.ForeignKey("resources.id"), nullable=False, index=True)
    resource_kind = db.Column(db.String(16), nullable=False)

    user_tag = db.Column(db.String(8), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)

    start_at = db.Column(db.DateTime(timezone=True), nullable=False)
    end_at = db.Column(db.DateTime(timezone=True), nullable=True)  # None for lockers

    status = db.Column(db.String(16), nullable=False, default=SESSION_ACTIVE, index=True)
    ended_reason = db.Column(db.String(16), nullable=True)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    resource = db.relationship("Resource", foreign_keys=[resource_id], viewonly=True)
    product = db.relationship("Product", viewonly=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "resource_kind": self.resource_kind,
            "resource_id": self.resource.code if self.resource else None,
            "user_tag": self.user_tag,
            "product": self.product.to_dict() if self.product else None,
            "start_at": to_utc_z(self.start_at),
            "end_at": to_utc_z(self.end_at),
            "status": self.status,
            "ended_reason": self.ended_reason,
            "ended_at": to_utc_z(self.ended_at),
        }
