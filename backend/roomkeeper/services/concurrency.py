# Overview: Transaction and optimistic-lock retry helpers shared by the session lifecycle.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import OptimisticLockError


RETRYABLE_ERRORS = (OptimisticLockError, StaleDataError)


def run_in_transaction(func):
    """
    Run func inside the ambient session transaction and commit.

    Any exception rolls back everything func wrote (resource, session and
    audit rows alike) and is re-raised unchanged.
    """
    try:
        result = func()
        db.session.commit()
        return result
    except Exception:
        db.session.rollback()
        raise


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a transactional operation with retry on version conflicts.

    Only lost compare-and-swap races (OptimisticLockError, StaleDataError)
    are retried, with exponential backoff. Everything else propagates on
    the first failure.
    """
    if attempts is None:
        attempts = current_app.config.get("LOCK_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("LOCK_RETRY_BACKOFF_SECONDS", 0.1)

    last_exc = None
    for attempt in range(attempts):
        try:
            return run_in_transaction(func)
        except RETRYABLE_ERRORS as exc:
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.info(
                "Version conflict (attempt %d/%d): %s", attempt + 1, attempts, exc
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
