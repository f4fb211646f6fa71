# Overview: Service-layer helpers for concurrency; conditional writes and transient-error retry.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from ..extensions import db
from ..errors import StoreUnavailable


def conditional_update(model, *, where: list, values: dict) -> int:
    """
    Apply a single-row compare-and-set UPDATE and return the matched row count.

    The WHERE clause carries every precondition of the transition, so the
    write only lands if they still hold at the instant the database applies
    it. No row lock is taken and nothing is read first.

    The caller owns the transaction: nothing is committed here.
    """
    stmt = (
        update(model)
        .where(*where)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on transient store failures.

    Retries on OperationalError only (locked database, dropped connection).
    Business rule failures propagate on the first attempt: a rejected
    conditional write is re-classified by the caller, never blindly replayed.
    Any failure leaves the session rolled back.
    """
    if attempts is None:
        attempts = current_app.config.get("STORE_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("STORE_RETRY_BACKOFF", 0.1)

    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Transient store error (attempt %s/%s): %s", attempt + 1, attempts, exc.orig
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc


def commit_write(description: str) -> None:
    """
    Commit the current transaction.

    A commit that fails with OperationalError has an unknown outcome, so it
    is surfaced as StoreUnavailable instead of being retried here. Only a
    resubmission carrying the same idempotency key can safely repeat it.
    IntegrityError propagates to the caller.
    """
    try:
        db.session.commit()
    except OperationalError as exc:
        db.session.rollback()
        current_app.logger.error("Commit failed for %s, outcome unknown: %s", description, exc.orig)
        raise StoreUnavailable(
            "The write could not be confirmed. Resubmit with the same idempotency key."
        ) from exc
