# Overview: Transaction scoping, row locking and retry for ledger writes.

from __future__ import annotations

import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrencyConflict
from ..extensions import db, product_locks


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    populate_existing() makes sure the locked read replaces anything the
    session already had cached for the same row.
    """
    return query.with_for_update().populate_existing()


@contextmanager
def unit_of_work():
    """
    One transaction per ledger call.

    Commits when the block finishes, rolls back and re-raises on any
    exception, so callers never see a half-applied movement.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


@contextmanager
def product_critical_section(product_id: int):
    """Exclusive access to one product's stock for the duration of the block."""
    timeout = current_app.config.get("STOCK_LOCK_TIMEOUT_SECONDS", 5.0)
    with product_locks.hold(product_id, timeout=timeout):
        yield


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks), StaleDataError
    (optimistic locking conflicts) and ConcurrencyConflict (per-product lock
    timeout). When the budget is spent the failure surfaces as
    ConcurrencyConflict, which callers may safely retry.
    """
    if attempts is None:
        attempts = current_app.config.get("STOCK_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("STOCK_RETRY_BACKOFF_SECONDS", 0.1)
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError, ConcurrencyConflict) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                if isinstance(exc, ConcurrencyConflict):
                    raise
                raise ConcurrencyConflict(
                    f"Concurrent update conflict persisted after {attempts} attempts",
                    attempts=attempts,
                ) from exc
            current_app.logger.warning(
                "Ledger write conflict (attempt %s/%s): %s", attempt + 1, attempts, exc
            )
            time.sleep(backoff_base * (2 ** attempt))
