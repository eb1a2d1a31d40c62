# Overview: Deadline sweep applying the MANUAL or AUTO expiration policy to overdue sessions.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from flask import current_app

from .resource_store import list_sessions_past_deadline
from .session_lifecycle_service import mark_session_expired, terminate_expired_session
from .settings_service import EXPIRATION_POLICIES, POLICY_AUTO, get_expiration_policy
from ..validation import ValidationError
from roomkeeper.time_utils import utcnow


@dataclass
class SweepResult:
    policy: str
    expired: list[int] = field(default_factory=list)
    ended: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.expired) + len(self.ended)

    def to_dict(self) -> dict:
        return {
            "policy": self.policy,
            "expired": self.expired,
            "ended": self.ended,
            "failed": self.failed,
        }


def sweep_expired_sessions(*, policy: str | None = None, now: Optional[datetime] = None) -> SweepResult:
    """
    Apply the expiration policy to every ACTIVE session past its deadline.

    WHY: there is no scheduler; the polling state read calls this first so
    every snapshot it returns is already self-correcting.

    Each session is handled in its own transaction. A failure is rolled
    back, logged and recorded in the result; the rest of the batch still runs.
    """
    if policy is None:
        policy = get_expiration_policy()
    policy = policy.upper()
    if policy not in EXPIRATION_POLICIES:
        raise ValidationError(f"Invalid expiration policy: {policy}")

    ts = now or utcnow()
    result = SweepResult(policy=policy)
    transition = terminate_expired_session if policy == POLICY_AUTO else mark_session_expired

    for session_id in list_sessions_past_deadline(ts):
        try:
            applied = transition(session_id, now=ts)
        except Exception:
            current_app.logger.exception(
                "Expiration sweep failed for session %s (policy=%s)", session_id, policy
            )
            result.failed.append(session_id)
            continue

        if not applied:
            continue
        if policy == POLICY_AUTO:
            result.ended.append(session_id)
        else:
            result.expired.append(session_id)

    if result.processed or result.failed:
        current_app.logger.info(
            "Expiration sweep (%s): %d expired, %d ended, %d failed",
            policy,
            len(result.expired),
            len(result.ended),
            len(result.failed),
        )
    return result
