from __future__ import annotations

from ..extensions import db
from roomkeeper.time_utils import to_utc_z


KIND_SEAT = "SEAT"
KIND_LOCKER = "LOCKER"

STATUS_AVAILABLE = "AVAILABLE"
STATUS_OCCUPIED = "OCCUPIED"
STATUS_EXPIRED = "EXPIRED"  # seats only
STATUS_DISABLED = "DISABLED"


class Resource(db.Model):
    """
    A seat or locker: the unit of exclusive allocation.

    Single tagged-variant table. Seats carry row/column geometry, lockers
    carry a pointer to the seat they were linked to at assignment time.

    LIFECYCLE:
    - SEAT:   AVAILABLE -> OCCUPIED -> {AVAILABLE, EXPIRED} -> AVAILABLE
    - LOCKER: AVAILABLE -> OCCUPIED -> AVAILABLE
    - DISABLED is administrative only

    CONCURRENCY: version is the sole concurrency token. Every status write
    is conditioned on the version read immediately before it.
    """
    __tablename__ = "resources"
    __table_args__ = (
        db.UniqueConstraint("kind", "code", name="uq_resources_kind_code"),
        db.Index("ix_resources_kind_status", "kind", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(16), nullable=False, index=True)

    # Human-meaningful identifier ("A12" for seats, "032" for lockers)
    code = db.Column(db.String(16), nullable=False)
    name = db.Column(db.String(64), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=STATUS_AVAILABLE)

    # Seat geometry
    row_label = db.Column(db.String(2), nullable=True)
    col_number = db.Column(db.Integer, nullable=True)

    # Locker -> seat link, set on assignment when tied to a seat session
    linked_resource_id = db.Column(db.Integer, db.ForeignKey("resources.id"), nullable=True)

    # No FK: resources and usage_sessions would reference each other
    current_session_id = db.Column(db.Integer, nullable=True, index=True)

    version = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    linked_resource = db.relationship("Resource", remote_side=[id], uselist=False, viewonly=True)
    current_session = db.relationship(
        "UsageSession",
        primaryjoin="foreign(Resource.current_session_id) == UsageSession.id",
        uselist=False,
        viewonly=True,
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Resource {self.kind}:{self.code} status={self.status} v{self.version}>"

    def to_dict(self, include_session: bool = True) -> dict:
        data = {
            "id": self.code,
            "kind": self.kind,
            "name": self.name,
            "status": self.status,
            "row": self.row_label,
            "col": self.col_number,
            "linked_resource_id": self.linked_resource.code if self.linked_resource else None,
            "current_session_id": self.current_session_id,
            "version": self.version,
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_session:
            session = self.current_session
            data["current_session"] = session.to_dict() if session else None
        return data
