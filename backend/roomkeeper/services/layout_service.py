# Overview: Seat/locker layout provisioning, default seed data and printable label payloads.

from __future__ import annotations

import string

from flask import current_app

from ..extensions import db
from ..models import AuditEvent, Product, Resource, UsageSession
from ..models.resources import KIND_LOCKER, KIND_SEAT, STATUS_AVAILABLE
from ..validation import ValidationError
from .resource_store import list_resources
from .scan_codes import LOCKER_ID_WIDTH, generate
from .settings_service import get_qr_format


MAX_ROWS = 26
MAX_COLS = 99
MAX_LOCKERS = 999

DEFAULT_ROWS = 4
DEFAULT_COLS = 4
DEFAULT_LOCKERS = 20

DEFAULT_PRODUCTS = (
    # code, name, minutes, price, is_default
    ("1H", "1 hour", 60, 2000, True),
    ("2H", "2 hours", 120, 3500, False),
    ("3H", "3 hours", 180, 5000, False),
    ("DAY", "Day pass", 1440, 12000, False),
)


def _require_count(value, field: str, *, minimum: int, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    if value > maximum:
        raise ValidationError(f"{field} cannot exceed {maximum}")
    return value


def _build_resources(row_count: int, col_count: int, locker_count: int) -> list[Resource]:
    rows = string.ascii_uppercase[:row_count]
    resources = []
    for row in rows:
        for col in range(1, col_count + 1):
            code = f"{row}{col}"
            resources.append(Resource(
                kind=KIND_SEAT,
                code=code,
                name=f"Seat {code}",
                status=STATUS_AVAILABLE,
                row_label=row,
                col_number=col,
            ))
    for n in range(1, locker_count + 1):
        resources.append(Resource(
            kind=KIND_LOCKER,
            code=str(n).zfill(LOCKER_ID_WIDTH),
            name=f"Locker {n}",
            status=STATUS_AVAILABLE,
        ))
    return resources


def apply_layout(row_count, col_count, locker_count) -> dict:
    """
    Replace every seat and locker with a fresh grid.

    DESTRUCTIVE: audit events and sessions are deleted too, in one
    transaction, so no session is left pointing at a removed resource.
    """
    row_count = _require_count(row_count, "Row count", minimum=1, maximum=MAX_ROWS)
    col_count = _require_count(col_count, "Column count", minimum=1, maximum=MAX_COLS)
    locker_count = _require_count(locker_count, "Locker count", minimum=0, maximum=MAX_LOCKERS)

    try:
        db.session.query(AuditEvent).delete(synchronize_session=False)
        db.session.query(UsageSession).delete(synchronize_session=False)
        db.session.query(Resource).delete(synchronize_session=False)
        db.session.add_all(_build_resources(row_count, col_count, locker_count))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.warning(
        "Layout reset: %d rows x %d cols, %d lockers", row_count, col_count, locker_count
    )
    return {
        "seat_count": row_count * col_count,
        "locker_count": locker_count,
    }


def seed_defaults() -> dict:
    """Create default products and the default layout where none exist yet."""
    created = {"products": 0, "seats": 0, "lockers": 0}

    if db.session.query(Product).count() == 0:
        for sort_order, (code, name, minutes, price, is_default) in enumerate(DEFAULT_PRODUCTS, start=1):
            db.session.add(Product(
                code=code,
                name=name,
                duration_minutes=minutes,
                price=price,
                is_default=is_default,
                is_active=True,
                sort_order=sort_order,
            ))
        created["products"] = len(DEFAULT_PRODUCTS)

    if db.session.query(Resource).count() == 0:
        db.session.add_all(_build_resources(DEFAULT_ROWS, DEFAULT_COLS, DEFAULT_LOCKERS))
        created["seats"] = DEFAULT_ROWS * DEFAULT_COLS
        created["lockers"] = DEFAULT_LOCKERS

    db.session.commit()
    return created


def build_labels(fmt: str | None = None) -> list[dict]:
    """Printable label payloads for every resource, in the configured wire format."""
    fmt = fmt or get_qr_format()
    labels = []
    for kind in (KIND_SEAT, KIND_LOCKER):
        for resource in list_resources(kind):
            labels.append({
                "kind": kind,
                "id": resource.code,
                "name": resource.name,
                "code": generate(kind, resource.code, fmt),
            })
    return labels
