# Overview: Data access for resources, usage sessions and the pricing catalog.

"""
Resource registry and session store.

All functions run inside the ambient Flask-SQLAlchemy session and never
commit; the caller (session_lifecycle_service) owns the transaction so the
resource, session and audit writes land atomically.
"""

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Product, Resource, UsageSession
from ..models.resources import KIND_SEAT
from ..models.sessions import SESSION_ACTIVE, SESSION_ENDED
from ..validation import PLAIN_INT_RE, ValidationError
from roomkeeper.time_utils import utcnow


# =============================================================================
# RESOURCES
# =============================================================================

def get_resource(kind: str, code: str) -> Resource | None:
    """Snapshot read; always reloads the row so a stale identity-map copy is never used."""
    return (
        db.session.query(Resource)
        .filter_by(kind=kind, code=code)
        .populate_existing()
        .first()
    )


def get_resource_with_session(kind: str, code: str) -> tuple[Resource | None, UsageSession | None]:
    """
    Load a resource and the session its pointer references.

    An ENDED session left behind by an inconsistent pointer is reported as
    no session.
    """
    resource = get_resource(kind, code)
    if resource is None or resource.current_session_id is None:
        return resource, None
    session = get_session(resource.current_session_id)
    if session is None or session.status == SESSION_ENDED:
        return resource, None
    return resource, session


def compare_and_swap_resource(
    kind: str,
    code: str,
    expected_version: int,
    expected_status: str,
    **fields,
) -> int:
    """
    Conditional UPDATE of a resource row, bumping its version.

    Returns the number of rows updated: 0 means another writer changed the
    row (version or status) since it was read.
    """
    values = dict(fields)
    values["version"] = Resource.version + 1
    values["updated_at"] = utcnow()
    return (
        db.session.query(Resource)
        .filter(
            Resource.kind == kind,
            Resource.code == code,
            Resource.version == expected_version,
            Resource.status == expected_status,
        )
        .update(values, synchronize_session=False)
    )


def list_resources(kind: str) -> list[Resource]:
    query = db.session.query(Resource).filter_by(kind=kind)
    if kind == KIND_SEAT:
        query = query.order_by(Resource.row_label.asc(), Resource.col_number.asc())
    else:
        query = query.order_by(Resource.code.asc())
    return query.all()


# =============================================================================
# SESSIONS
# =============================================================================

def create_session(
    *,
    resource: Resource,
    user_tag: str,
    start_at: datetime,
    end_at: datetime | None = None,
    product_id: int | None = None,
) -> UsageSession:
    session = UsageSession(
        resource_id=resource.id,
        resource_kind=resource.kind,
        user_tag=user_tag,
        product_id=product_id,
        start_at=start_at,
        end_at=end_at,
        status=SESSION_ACTIVE,
    )
    db.session.add(session)
    db.session.flush()  # assigns session.id without committing
    return session


def update_session(session_id: int, **fields) -> None:
    db.session.query(UsageSession).filter_by(id=session_id).update(
        fields, synchronize_session=False
    )


def compare_and_swap_session(
    session_id: int,
    expected_status: str,
    expected_end_at: datetime | None,
    **fields,
) -> int:
    """
    Conditional UPDATE of a session row.

    Applies only while the session still has the status and deadline the
    caller read; 0 means an extend or end landed in between.
    """
    deadline = (
        UsageSession.end_at.is_(None)
        if expected_end_at is None
        else UsageSession.end_at == expected_end_at
    )
    return (
        db.session.query(UsageSession)
        .filter(
            UsageSession.id == session_id,
            UsageSession.status == expected_status,
            deadline,
        )
        .update(fields, synchronize_session=False)
    )


def get_session(session_id: int) -> UsageSession | None:
    return (
        db.session.query(UsageSession)
        .filter_by(id=session_id)
        .populate_existing()
        .first()
    )


def list_active_sessions() -> list[UsageSession]:
    return (
        db.session.query(UsageSession)
        .filter_by(status=SESSION_ACTIVE)
        .order_by(UsageSession.start_at.desc())
        .all()
    )


def list_sessions_past_deadline(now: datetime) -> list[int]:
    """Ids of ACTIVE sessions whose deadline is strictly before now."""
    rows = (
        db.session.query(UsageSession.id)
        .filter(
            UsageSession.status == SESSION_ACTIVE,
            UsageSession.end_at.isnot(None),
            UsageSession.end_at < now,
        )
        .order_by(UsageSession.end_at.asc())
        .all()
    )
    return [row.id for row in rows]


# =============================================================================
# PRICING CATALOG (read-only)
# =============================================================================

def get_product(product_id) -> Product | None:
    """Catalog lookup by id. Floats, bools and non-digit text are VALIDATION, not truncated."""
    if product_id is None:
        return None
    if isinstance(product_id, str) and PLAIN_INT_RE.fullmatch(product_id.strip()):
        product_id = int(product_id.strip())
    if isinstance(product_id, bool) or not isinstance(product_id, int):
        raise ValidationError("Invalid product id")
    return db.session.get(Product, product_id)


def list_products(include_inactive: bool = False) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.sort_order.asc(), Product.id.asc()).all()
