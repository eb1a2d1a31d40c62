from __future__ import annotations

import re
from typing import Any


USER_TAG_RE = re.compile(r"[0-9]{4}")
PLAIN_INT_RE = re.compile(r"[0-9]+")

# Sub-codes the kiosk maps to distinct on-screen messages
REASON_UNRECOGNIZED_CODE = "UNRECOGNIZED_CODE"
REASON_WRONG_CODE_TYPE = "WRONG_CODE_TYPE"
REASON_RESOURCE_BUSY = "RESOURCE_BUSY"
REASON_NO_ACTIVE_SESSION = "NO_ACTIVE_SESSION"
REASON_VERSION_CONFLICT = "VERSION_CONFLICT"
REASON_TAG_MISMATCH = "TAG_MISMATCH"


class LifecycleError(Exception):
    """
    Base error for seat/locker operations.

    Every error carries a stable machine-readable kind, an HTTP status for
    the route layer, and an optional reason sub-code.
    """
    kind = "INTERNAL"
    status_code = 500

    def __init__(self, message: str, *, reason: str | None = None):
        super().__init__(message)
        self.message = message
        self.reason = reason

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"error": self.message, "code": self.kind}
        if self.reason:
            body["reason"] = self.reason
        return body


class NotFoundError(LifecycleError):
    """404: resource, session or product absent."""
    kind = "NOT_FOUND"
    status_code = 404


class ConflictError(LifecycleError):
    """409: resource not in the required status."""
    kind = "CONFLICT"
    status_code = 409


class OptimisticLockError(ConflictError):
    """A compare-and-swap on a resource version updated zero rows."""

    def __init__(self, message: str = "Resource was modified by another transaction"):
        super().__init__(message, reason=REASON_VERSION_CONFLICT)


class ValidationError(LifecycleError):
    """400-level input problem."""
    kind = "VALIDATION"
    status_code = 400


class ForbiddenError(LifecycleError):
    kind = "FORBIDDEN"
    status_code = 403


class UnauthorizedError(LifecycleError):
    kind = "UNAUTHORIZED"
    status_code = 401


class RateLimitError(LifecycleError):
    kind = "RATE_LIMITED"
    status_code = 429

    def __init__(self, retry_after_seconds: int, message: str = "Too many requests. Please try again later."):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["retry_after_seconds"] = self.retry_after_seconds
        return body


def validate_user_tag(user_tag: Any) -> bool:
    """User tags are the last 4 digits of a phone number, nothing more."""
    return isinstance(user_tag, str) and bool(USER_TAG_RE.fullmatch(user_tag))


def require_user_tag(user_tag: Any) -> str:
    if not user_tag:
        raise ValidationError("Please enter the last 4 digits of your phone number")
    if not validate_user_tag(user_tag):
        raise ValidationError("Invalid user tag. Please enter 4 digits.")
    return user_tag


def require_positive_int(value: Any, field: str, *, maximum: int | None = None) -> int:
    """
    Strict integer coercion for request payloads.

    Rejects bools, floats, decimals and scientific notation strings.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not PLAIN_INT_RE.fullmatch(stripped):
            raise ValidationError(f"{field} must be a plain integer")
        value = int(stripped)
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value <= 0:
        raise ValidationError(f"{field} must be positive")
    if maximum is not None and value > maximum:
        raise ValidationError(f"{field} cannot exceed {maximum}")
    return value
