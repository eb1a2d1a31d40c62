# Overview: Session lifecycle for seats and lockers; begin, end, extend and scan dispatch under optimistic locking.

"""
Session Lifecycle Manager

WHY: Kiosks, the admin console and the expiration sweep can all act on the
same seat at once. Every mutation re-reads the resource, validates its state,
writes the session and a version-checked resource update, and appends one
audit event, all inside a single transaction.

CONCURRENCY:
- The resource version is the only concurrency token; no row locks are taken.
- Begin and extend retry a lost compare-and-swap (bounded, exponential backoff).
- End never retries: a lost race surfaces as CONFLICT because the precondition
  itself may have changed.
- This module is the only writer of resource status/version and session
  status/deadline.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..models import Resource, UsageSession
from ..models.audit import (
    ACTOR_ADMIN,
    ACTOR_CUSTOMER,
    ACTOR_SYSTEM,
    EVENT_ASSIGN,
    EVENT_CHECK_IN,
    EVENT_CHECK_OUT,
    EVENT_EXTEND,
    EVENT_FORCE_END,
    EVENT_RELEASE,
)
from ..models.resources import (
    KIND_LOCKER,
    KIND_SEAT,
    STATUS_AVAILABLE,
    STATUS_EXPIRED,
    STATUS_OCCUPIED,
)
from ..models.sessions import (
    ENDED_CHECKOUT,
    ENDED_EXPIRED,
    ENDED_FORCE_END,
    ENDED_RELEASED,
    SESSION_ACTIVE,
    SESSION_ENDED,
    SESSION_EXPIRED,
)
from ..validation import (
    REASON_NO_ACTIVE_SESSION,
    REASON_RESOURCE_BUSY,
    REASON_TAG_MISMATCH,
    REASON_UNRECOGNIZED_CODE,
    REASON_VERSION_CONFLICT,
    REASON_WRONG_CODE_TYPE,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    OptimisticLockError,
    ValidationError,
    require_positive_int,
    require_user_tag,
)
from .audit_service import append_audit_event
from .concurrency import RETRYABLE_ERRORS, run_in_transaction, run_with_retry
from .resource_store import (
    compare_and_swap_resource,
    compare_and_swap_session,
    create_session,
    get_product,
    get_resource,
    get_resource_with_session,
    get_session,
    update_session,
)
from .scan_codes import normalize_locker_id, normalize_resource_id, normalize_seat_id, resolve
from roomkeeper.time_utils import add_minutes, to_utc_z, utcnow


INTENT_BEGIN_SEAT = "BEGIN_SEAT"
INTENT_END_SEAT = "END_SEAT"
INTENT_BEGIN_LOCKER = "BEGIN_LOCKER"
INTENT_END_LOCKER = "END_LOCKER"

# intent -> (expected resource kind, is a begin)
SCAN_INTENTS = {
    INTENT_BEGIN_SEAT: (KIND_SEAT, True),
    INTENT_END_SEAT: (KIND_SEAT, False),
    INTENT_BEGIN_LOCKER: (KIND_LOCKER, True),
    INTENT_END_LOCKER: (KIND_LOCKER, False),
}

MAX_EXTEND_MINUTES = 24 * 60


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class BeginResult:
    session: UsageSession
    resource: Resource

    def to_dict(self) -> dict:
        return {
            "session": self.session.to_dict(),
            "resource": self.resource.to_dict(include_session=False),
        }


@dataclass
class EndResult:
    session: UsageSession
    resource: Resource
    forced: bool = False

    def to_dict(self) -> dict:
        return {
            "session": self.session.to_dict(),
            "resource": self.resource.to_dict(include_session=False),
            "forced": self.forced,
        }


@dataclass
class ExtendResult:
    session: UsageSession
    resource: Resource
    previous_end_at: datetime
    added_minutes: int

    def to_dict(self) -> dict:
        return {
            "session": self.session.to_dict(),
            "resource": self.resource.to_dict(include_session=False),
            "previous_end_at": to_utc_z(self.previous_end_at),
            "added_minutes": self.added_minutes,
        }


@dataclass
class DispatchResult:
    intent: str
    kind: str
    resource_id: str
    outcome: Any

    def to_dict(self) -> dict:
        return {
            "intent": self.intent,
            "type": self.kind,
            "resource_id": self.resource_id,
            **self.outcome.to_dict(),
        }


# =============================================================================
# HELPERS
# =============================================================================

def _label(kind: str, code: str) -> str:
    return f"{kind.capitalize()} {code}"


def _run_locked(op, what: str):
    """
    Retry op on version conflicts; exhaustion becomes a plain CONFLICT.
    """
    try:
        return run_with_retry(op)
    except RETRYABLE_ERRORS:
        raise ConflictError(
            f"{what} was modified concurrently. Please try again.",
            reason=REASON_VERSION_CONFLICT,
        )


def _load_result(result_cls, kind: str, code: str, session_id: int, **extra):
    return result_cls(
        session=get_session(session_id),
        resource=get_resource(kind, code),
        **extra,
    )


def _resolve_product(product_id, *, missing_is_not_found: bool):
    product = get_product(product_id)
    if product is None:
        if missing_is_not_found:
            raise NotFoundError("Product not found")
        raise ValidationError("Invalid or inactive product")
    if not product.is_active:
        raise ValidationError("Invalid or inactive product")
    return product


# =============================================================================
# BEGIN
# =============================================================================

def begin_seat_session(
    seat_id: str,
    product_id,
    user_tag: str,
    *,
    actor_role: str = ACTOR_CUSTOMER,
    now: Optional[datetime] = None,
) -> BeginResult:
    """
    Check a user in to a seat for the duration of a product.

    Args:
        seat_id: Seat identifier, e.g. "A1" (case-insensitive)
        product_id: Pricing product; its duration sets the deadline
        user_tag: Last 4 digits of the user's phone number
        actor_role: CUSTOMER for kiosk check-ins, ADMIN for console ones
        now: Clock override

    Raises:
        NotFoundError: seat or product does not exist
        ConflictError: seat is not AVAILABLE, or retries were exhausted
        ValidationError: malformed seat id or tag, inactive product
    """
    seat_code = normalize_seat_id(seat_id)
    user_tag = require_user_tag(user_tag)

    def _op():
        started_at = now or utcnow()
        seat, _ = get_resource_with_session(KIND_SEAT, seat_code)
        if seat is None:
            raise NotFoundError(f"Seat {seat_code} not found")
        if seat.status != STATUS_AVAILABLE:
            raise ConflictError(
                f"Seat {seat_code} is not available (status: {seat.status})",
                reason=REASON_RESOURCE_BUSY,
            )

        product = _resolve_product(product_id, missing_is_not_found=True)
        end_at = add_minutes(started_at, product.duration_minutes)

        session = create_session(
            resource=seat,
            user_tag=user_tag,
            start_at=started_at,
            end_at=end_at,
            product_id=product.id,
        )

        updated = compare_and_swap_resource(
            KIND_SEAT,
            seat_code,
            seat.version,
            STATUS_AVAILABLE,
            status=STATUS_OCCUPIED,
            current_session_id=session.id,
        )
        if updated == 0:
            raise OptimisticLockError()

        append_audit_event(
            EVENT_CHECK_IN,
            {
                "seatId": seat_code,
                "productId": product.id,
                "productName": product.name,
                "userTag": user_tag,
                "sessionId": session.id,
                "startAt": started_at,
                "endAt": end_at,
            },
            actor_role,
            occurred_at=started_at,
        )
        return session.id

    session_id = _run_locked(_op, f"Seat {seat_code}")
    return _load_result(BeginResult, KIND_SEAT, seat_code, session_id)


def begin_locker_session(
    locker_id,
    user_tag: str,
    *,
    linked_seat_session_id=None,
    actor_role: str = ACTOR_CUSTOMER,
    now: Optional[datetime] = None,
) -> BeginResult:
    """
    Assign a locker. Lockers have no deadline; they may be tied to an
    ACTIVE seat session, in which case the seat is recorded as the
    locker's linked resource.
    """
    locker_code = normalize_locker_id(locker_id)
    user_tag = require_user_tag(user_tag)

    def _op():
        started_at = now or utcnow()
        locker, _ = get_resource_with_session(KIND_LOCKER, locker_code)
        if locker is None:
            raise NotFoundError(f"Locker {locker_code} not found")
        if locker.status != STATUS_AVAILABLE:
            raise ConflictError(
                f"Locker {locker_code} is not available (status: {locker.status})",
                reason=REASON_RESOURCE_BUSY,
            )

        linked_seat = None
        linked_session = None
        if linked_seat_session_id is not None:
            try:
                linked_pk = int(linked_seat_session_id)
            except (TypeError, ValueError):
                raise ValidationError("Invalid linked seat session id")
            linked_session = get_session(linked_pk)
            if (
                linked_session is None
                or linked_session.status != SESSION_ACTIVE
                or linked_session.resource_kind != KIND_SEAT
            ):
                raise ValidationError("Linked seat session is not active")
            linked_seat = linked_session.resource

        session = create_session(
            resource=locker,
            user_tag=user_tag,
            start_at=started_at,
        )

        updated = compare_and_swap_resource(
            KIND_LOCKER,
            locker_code,
            locker.version,
            STATUS_AVAILABLE,
            status=STATUS_OCCUPIED,
            current_session_id=session.id,
            linked_resource_id=linked_seat.id if linked_seat else None,
        )
        if updated == 0:
            raise OptimisticLockError()

        append_audit_event(
            EVENT_ASSIGN,
            {
                "lockerId": locker_code,
                "userTag": user_tag,
                "sessionId": session.id,
                "startAt": started_at,
                "linkedSeatId": linked_seat.code if linked_seat else None,
                "linkedSeatSessionId": linked_session.id if linked_session else None,
            },
            actor_role,
            occurred_at=started_at,
        )
        return session.id

    session_id = _run_locked(_op, f"Locker {locker_code}")
    return _load_result(BeginResult, KIND_LOCKER, locker_code, session_id)


# =============================================================================
# END
# =============================================================================

def end_session(
    kind: str,
    resource_id,
    user_tag: str | None = None,
    *,
    force: bool = False,
    now: Optional[datetime] = None,
) -> EndResult:
    """
    Check out of a seat or release a locker.

    Self-service callers must present the session's user tag; force=True
    (admin) skips the tag check and records a FORCE_END. A lost
    compare-and-swap is surfaced as CONFLICT without retrying.
    """
    code = normalize_resource_id(kind, resource_id)
    label = _label(kind, code)

    def _op():
        ended_at = now or utcnow()
        resource, session = get_resource_with_session(kind, code)
        if resource is None:
            raise NotFoundError(f"{label} not found")
        if session is None:
            raise ConflictError(f"No active session for {label}", reason=REASON_NO_ACTIVE_SESSION)

        if not force:
            require_user_tag(user_tag)
            if session.user_tag != user_tag:
                raise ForbiddenError(
                    "User tag does not match. Please ask an admin for help.",
                    reason=REASON_TAG_MISMATCH,
                )

        if force:
            ended_reason = ENDED_FORCE_END
        elif kind == KIND_SEAT:
            ended_reason = ENDED_CHECKOUT
        else:
            ended_reason = ENDED_RELEASED

        update_session(
            session.id,
            status=SESSION_ENDED,
            ended_reason=ended_reason,
            ended_at=ended_at,
        )

        updated = compare_and_swap_resource(
            kind,
            code,
            resource.version,
            resource.status,
            status=STATUS_AVAILABLE,
            current_session_id=None,
            linked_resource_id=None,
        )
        if updated == 0:
            raise OptimisticLockError(f"{label} was modified by another transaction")

        if kind == KIND_LOCKER:
            event_type = EVENT_RELEASE
            payload = {"lockerId": code}
        else:
            event_type = EVENT_FORCE_END if force else EVENT_CHECK_OUT
            payload = {"seatId": code}
        payload.update({
            "sessionId": session.id,
            "userTag": session.user_tag,
            "endedReason": ended_reason,
            "endedAt": ended_at,
        })
        if force:
            payload["forced"] = True

        append_audit_event(
            event_type,
            payload,
            ACTOR_ADMIN if force else ACTOR_CUSTOMER,
            occurred_at=ended_at,
        )
        return session.id

    session_id = run_in_transaction(_op)
    return _load_result(EndResult, kind, code, session_id, forced=force)


# =============================================================================
# EXTEND
# =============================================================================

def extend_session(
    seat_id: str,
    *,
    minutes=None,
    product_id=None,
    privileged: bool = True,
    now: Optional[datetime] = None,
) -> ExtendResult:
    """
    Push a seat session's deadline out.

    New deadline = max(current deadline, now) + minutes, where minutes come
    from the request or from a product's duration. An EXPIRED seat and
    session are restored to OCCUPIED/ACTIVE; ENDED sessions are never revived.
    Admin only.
    """
    if not privileged:
        raise ForbiddenError("Admin access required")
    seat_code = normalize_seat_id(seat_id)

    if minutes is None and product_id is None:
        raise ValidationError("Must specify minutes or product_id")
    if minutes is not None:
        minutes = require_positive_int(minutes, "minutes", maximum=MAX_EXTEND_MINUTES)

    def _op():
        ts = now or utcnow()
        seat, session = get_resource_with_session(KIND_SEAT, seat_code)
        if seat is None:
            raise NotFoundError(f"Seat {seat_code} not found")
        if session is None or session.end_at is None:
            raise ConflictError(
                f"No active session for seat {seat_code}",
                reason=REASON_NO_ACTIVE_SESSION,
            )

        product = None
        add = minutes
        if product_id is not None:
            product = _resolve_product(product_id, missing_is_not_found=False)
            add = product.duration_minutes

        previous_end_at = session.end_at
        new_end_at = add_minutes(max(previous_end_at, ts), add)

        fields = {"end_at": new_end_at}
        restored = session.status == SESSION_EXPIRED or seat.status == STATUS_EXPIRED
        if session.status == SESSION_EXPIRED:
            fields["status"] = SESSION_ACTIVE
        update_session(session.id, **fields)

        updated = compare_and_swap_resource(
            KIND_SEAT,
            seat_code,
            seat.version,
            seat.status,
            status=STATUS_OCCUPIED,
        )
        if updated == 0:
            raise OptimisticLockError()

        append_audit_event(
            EVENT_EXTEND,
            {
                "seatId": seat_code,
                "sessionId": session.id,
                "userTag": session.user_tag,
                "addMinutes": add,
                "productId": product.id if product else None,
                "productName": product.name if product else None,
                "previousEndAt": previous_end_at,
                "newEndAt": new_end_at,
                "restoredFromExpired": restored,
            },
            ACTOR_ADMIN,
            occurred_at=ts,
        )
        return session.id, previous_end_at, add

    session_id, previous_end_at, added = _run_locked(_op, f"Seat {seat_code}")
    return _load_result(
        ExtendResult,
        KIND_SEAT,
        seat_code,
        session_id,
        previous_end_at=previous_end_at,
        added_minutes=added,
    )


# =============================================================================
# SCAN DISPATCH
# =============================================================================

def lookup_scan(raw: Any) -> dict:
    """Resolve a scanned code to the resource it names and its current session."""
    scan = resolve(raw)
    if not scan.recognized:
        raise ValidationError(
            "Invalid code format. Expected SEAT:XX or LOCKER:XXX",
            reason=REASON_UNRECOGNIZED_CODE,
        )
    resource, session = get_resource_with_session(scan.kind, scan.resource_id)
    if resource is None:
        raise NotFoundError(f"{_label(scan.kind, scan.resource_id)} not found")
    return {
        "type": scan.kind,
        "resource_id": scan.resource_id,
        "resource": resource.to_dict(),
        "has_active_session": session is not None,
    }


def dispatch_scan(
    raw: Any,
    intent: str,
    *,
    user_tag: str | None = None,
    product_id=None,
    linked_seat_session_id=None,
    force: bool = False,
    now: Optional[datetime] = None,
) -> DispatchResult:
    """
    Resolve a scan, check it fits the operator's intent, then begin or end.

    Distinct reasons let the kiosk explain the failure:
    UNRECOGNIZED_CODE, WRONG_CODE_TYPE, RESOURCE_BUSY, NO_ACTIVE_SESSION.
    """
    if intent not in SCAN_INTENTS:
        raise ValidationError(f"Unknown scan intent: {intent}")
    expected_kind, begins = SCAN_INTENTS[intent]

    scan = resolve(raw)
    if not scan.recognized:
        raise ValidationError("Unrecognized code", reason=REASON_UNRECOGNIZED_CODE)
    if scan.kind != expected_kind:
        raise ValidationError(
            f"Please scan a {expected_kind.lower()} code, not a {scan.kind.lower()} code",
            reason=REASON_WRONG_CODE_TYPE,
        )

    label = _label(scan.kind, scan.resource_id)
    resource, session = get_resource_with_session(scan.kind, scan.resource_id)
    if resource is None:
        raise NotFoundError(f"{label} not found")
    if begins and resource.status != STATUS_AVAILABLE:
        raise ConflictError(f"{label} is already in use", reason=REASON_RESOURCE_BUSY)
    if not begins and session is None:
        raise ConflictError(f"{label} is not in use", reason=REASON_NO_ACTIVE_SESSION)

    if intent == INTENT_BEGIN_SEAT:
        outcome = begin_seat_session(scan.resource_id, product_id, user_tag, now=now)
    elif intent == INTENT_BEGIN_LOCKER:
        outcome = begin_locker_session(
            scan.resource_id,
            user_tag,
            linked_seat_session_id=linked_seat_session_id,
            now=now,
        )
    else:
        outcome = end_session(scan.kind, scan.resource_id, user_tag, force=force, now=now)

    return DispatchResult(intent, scan.kind, scan.resource_id, outcome)


# =============================================================================
# EXPIRATION TRANSITIONS (called by expiration_service)
# =============================================================================

def _overdue_snapshot(session_id: int, ts: datetime):
    """
    Snapshot for an expiration transition, read before any write.

    The owning resource (and its version) is read first, then the session.
    Returns (resource, session, owns) when the session is still ACTIVE and
    past its deadline, else None. owns is False when the resource pointer
    has already moved off this session.
    """
    session = get_session(session_id)
    if session is None or session.resource is None:
        return None

    resource, current = get_resource_with_session(session.resource_kind, session.resource.code)
    owns = current is not None and current.id == session_id
    if owns:
        session = current
    else:
        session = get_session(session_id)

    if session is None or session.status != SESSION_ACTIVE:
        return None
    if session.end_at is None or session.end_at >= ts:
        return None
    return resource, session, owns


def mark_session_expired(session_id: int, now: Optional[datetime] = None) -> bool:
    """
    MANUAL policy: flag an overdue session EXPIRED, and its seat too.

    The session stays attached to the resource; no audit event is written.
    Both writes are conditioned on the snapshot (seat version, session
    status and deadline), so an extend that lands first wins and the
    re-read on retry finds the session no longer overdue.
    Returns False when the session no longer qualifies.
    """
    def _op():
        ts = now or utcnow()
        snapshot = _overdue_snapshot(session_id, ts)
        if snapshot is None:
            return False
        resource, session, owns = snapshot

        if owns and resource.kind == KIND_SEAT and resource.status == STATUS_OCCUPIED:
            updated = compare_and_swap_resource(
                KIND_SEAT,
                resource.code,
                resource.version,
                STATUS_OCCUPIED,
                status=STATUS_EXPIRED,
            )
            if updated == 0:
                raise OptimisticLockError()

        updated = compare_and_swap_session(
            session.id,
            SESSION_ACTIVE,
            session.end_at,
            status=SESSION_EXPIRED,
        )
        if updated == 0:
            raise OptimisticLockError(f"Session {session.id} was modified by another transaction")
        return True

    return run_with_retry(_op)


def terminate_expired_session(session_id: int, now: Optional[datetime] = None) -> bool:
    """
    AUTO policy: fully end an overdue session.

    Session -> ENDED (EXPIRED), resource -> AVAILABLE with its session and
    linked-resource pointers cleared, one FORCE_END event by SYSTEM.
    Writes are conditioned on the snapshot like mark_session_expired.
    """
    def _op():
        ts = now or utcnow()
        snapshot = _overdue_snapshot(session_id, ts)
        if snapshot is None:
            return False
        resource, session, owns = snapshot

        if owns:
            updated = compare_and_swap_resource(
                resource.kind,
                resource.code,
                resource.version,
                resource.status,
                status=STATUS_AVAILABLE,
                current_session_id=None,
                linked_resource_id=None,
            )
            if updated == 0:
                raise OptimisticLockError()

        updated = compare_and_swap_session(
            session.id,
            SESSION_ACTIVE,
            session.end_at,
            status=SESSION_ENDED,
            ended_reason=ENDED_EXPIRED,
            ended_at=ts,
        )
        if updated == 0:
            raise OptimisticLockError(f"Session {session.id} was modified by another transaction")

        append_audit_event(
            EVENT_FORCE_END,
            {
                "resourceType": session.resource_kind,
                "resourceId": resource.code if resource is not None else None,
                "sessionId": session.id,
                "userTag": session.user_tag,
                "endedReason": ENDED_EXPIRED,
                "endAt": session.end_at,
            },
            ACTOR_SYSTEM,
            occurred_at=ts,
        )
        return True

    return run_with_retry(_op)
