# Overview: Service-layer transaction helpers; row locking, retries and atomic write blocks.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there atomic() takes the
    database write lock up front instead.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Domain errors propagate immediately.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


@contextmanager
def atomic():
    """
    One write transaction.

    On SQLite, BEGIN IMMEDIATE serializes writers so a check-then-write
    sequence (stock snapshot, then debits) cannot interleave with another
    request. Commits on success, rolls back on any exception.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def run_atomic(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """run_with_retry(func) where every attempt is its own atomic() block."""
    def _op():
        with atomic():
            return func()
    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
